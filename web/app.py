"""Flask JSON API for the maintenance contract console."""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request, session

# Add parent directory to path for biomed imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from biomed.auth import AuthService, Session, ensure_admin
from biomed.config import Config
from biomed.console import Console
from biomed.errors import ConsoleError, SessionExpired, StoreError
from biomed.filters import MaintenanceFilters
from biomed.loader import customer_to_row, equipment_to_row, record_to_row, visit_to_row
from biomed.maintenance_record import MaintenanceRecord
from biomed.store import RecordStore

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)

PUBLIC_ENDPOINTS = {"api.login", "api.session_status"}
LIST_FILTER_KEYS = ("customer_ids", "equipment_ids", "service_statuses", "record_statuses")


def get_store() -> RecordStore:
    return current_app.extensions["amc_store"]


def get_auth() -> AuthService:
    """Auth service for this request only; it holds the caller's cookie session."""
    if "amc_auth" not in g:
        g.amc_auth = AuthService(get_store(), current_app.config["AMC_SESSION_TTL_MINUTES"])
    return g.amc_auth


def get_console() -> Console:
    """Console for this request, reading records fresh from the shared store."""
    if "amc_console" not in g:
        g.amc_console = Console(get_store(), get_auth())
    return g.amc_console


def record_json(record: MaintenanceRecord, today: Optional[date] = None) -> Dict[str, Any]:
    """Record row plus joined relations and derived status fields."""
    data = record_to_row(record)
    data["customer"] = customer_to_row(record.customer) if record.customer else None
    data["equipment"] = equipment_to_row(record.equipment) if record.equipment else None
    data["visits"] = [visit_to_row(v) for v in record.visits]
    data["is_expired"] = record.is_expired(today)
    data["record_status"] = record.record_status(today).value
    data["age"] = record.age(today)
    data["next_visit_date"] = record.next_visit_date()
    return data


def filter_args() -> Dict[str, Any]:
    """Flatten query args; repeated list keys are joined with commas."""
    args = request.args.to_dict()
    for key in LIST_FILTER_KEYS:
        values = request.args.getlist(key)
        if values:
            args[key] = ",".join(values)
    return args


def body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


# =============================================================================
# Session handling
# =============================================================================


@api.before_app_request
def load_session():
    """Restore the operator session from the signed cookie; reject expired ones."""
    # Unknown URLs fall through to Flask's 404
    if request.endpoint is None or request.endpoint in PUBLIC_ENDPOINTS:
        return None
    data = session.get("auth")
    if not data:
        return jsonify(error="Please log in"), 401
    current = Session.from_dict(data)
    if current.is_expired():
        session.clear()
        return jsonify(error="Session expired. Please log in again."), 401
    get_auth().resume(current)
    return None


@api.app_errorhandler(ConsoleError)
def handle_console_error(error: ConsoleError):
    if isinstance(error, SessionExpired):
        session.clear()
    elif type(error) is StoreError:
        logger.exception("Store operation failed")
        return jsonify(error="Operation failed"), error.status_code
    return jsonify(error=str(error)), error.status_code


@api.route("/login", methods=["POST"])
def login():
    data = body()
    current = get_auth().login(data.get("email"), data.get("password"))
    session.clear()
    session["auth"] = current.to_dict()
    return jsonify(current.to_dict())


@api.route("/logout", methods=["POST"])
def logout():
    get_auth().logout()
    session.clear()
    return jsonify(success=True)


@api.route("/session")
def session_status():
    """Polled by the client every session_check_seconds; clears lapsed sessions."""
    poll_seconds = current_app.config["AMC_SESSION_CHECK_SECONDS"]
    data = session.get("auth")
    if not data:
        return jsonify(authenticated=False, poll_seconds=poll_seconds), 401
    current = Session.from_dict(data)
    if current.is_expired():
        session.clear()
        return jsonify(authenticated=False, poll_seconds=poll_seconds, error="Session expired"), 401
    return jsonify(authenticated=True, poll_seconds=poll_seconds, **current.to_dict())


# =============================================================================
# Customers and equipment
# =============================================================================


@api.route("/customers", methods=["GET"])
def list_customers():
    return jsonify([customer_to_row(c) for c in get_console().customers()])


@api.route("/customers", methods=["POST"])
def add_customer():
    return jsonify(customer_to_row(get_console().add_customer(body()))), 201


@api.route("/customers/<customer_id>", methods=["PUT"])
def edit_customer(customer_id: str):
    return jsonify(customer_to_row(get_console().edit_customer(customer_id, body())))


@api.route("/customers/<customer_id>", methods=["DELETE"])
def delete_customer(customer_id: str):
    get_console().delete_customer(customer_id)
    return jsonify(success=True)


@api.route("/equipment", methods=["GET"])
def list_equipment():
    return jsonify([equipment_to_row(e) for e in get_console().equipment()])


@api.route("/equipment", methods=["POST"])
def add_equipment():
    return jsonify(equipment_to_row(get_console().add_equipment(body()))), 201


@api.route("/equipment/<equipment_id>", methods=["PUT"])
def edit_equipment(equipment_id: str):
    return jsonify(equipment_to_row(get_console().edit_equipment(equipment_id, body())))


@api.route("/equipment/<equipment_id>", methods=["DELETE"])
def delete_equipment(equipment_id: str):
    get_console().delete_equipment(equipment_id)
    return jsonify(success=True)


# =============================================================================
# Maintenance records
# =============================================================================


@api.route("/maintenance", methods=["GET"])
def list_maintenance():
    """Filtered, paginated record list."""
    try:
        filters = MaintenanceFilters.from_mapping(filter_args())
        page = int(request.args.get("page", 1))
        page_size = int(request.args.get("page_size", current_app.config["AMC_PAGE_SIZE"]))
    except ValueError as e:
        return jsonify(error=f"Invalid filter value: {e}"), 400

    result = get_console().list_maintenance(filters, page, page_size)
    return jsonify(
        items=[record_json(r) for r in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
        total_pages=result.total_pages,
        has_previous=result.has_previous,
        has_next=result.has_next,
        filters=filters.describe(),
    )


@api.route("/maintenance", methods=["POST"])
def add_maintenance():
    return jsonify(record_json(get_console().add_maintenance(body()))), 201


@api.route("/maintenance/<record_id>", methods=["GET"])
def get_maintenance(record_id: str):
    return jsonify(record_json(get_console().get_record(record_id)))


@api.route("/maintenance/<record_id>", methods=["PUT"])
def edit_maintenance(record_id: str):
    return jsonify(record_json(get_console().edit_maintenance(record_id, body())))


@api.route("/maintenance/<record_id>", methods=["DELETE"])
def delete_maintenance(record_id: str):
    removed = get_console().delete_maintenance(record_id)
    return jsonify(success=True, visits_deleted=removed)


@api.route("/maintenance/<record_id>/renew", methods=["GET"])
def renewal_draft(record_id: str):
    return jsonify(get_console().renewal_draft(record_id))


@api.route("/maintenance/<record_id>/renew", methods=["POST"])
def renew_maintenance(record_id: str):
    return jsonify(record_json(get_console().renew_maintenance(record_id, body())))


@api.route("/maintenance/<record_id>/contracts", methods=["GET"])
def contract_history(record_id: str):
    record = get_console().get_record(record_id)
    return jsonify([c.to_dict() for c in record.service_contracts])


# =============================================================================
# Visits
# =============================================================================


@api.route("/maintenance/<record_id>/visits", methods=["GET"])
def list_visits(record_id: str):
    record = get_console().get_record(record_id)
    return jsonify([visit_to_row(v) for v in record.get_visits_sorted()])


@api.route("/maintenance/<record_id>/visits", methods=["POST"])
def add_visit(record_id: str):
    return jsonify(visit_to_row(get_console().add_visit(record_id, body()))), 201


@api.route("/visits/<visit_id>", methods=["PUT"])
def edit_visit(visit_id: str):
    return jsonify(visit_to_row(get_console().edit_visit(visit_id, body())))


@api.route("/visits/<visit_id>", methods=["DELETE"])
def delete_visit(visit_id: str):
    get_console().delete_visit(visit_id)
    return jsonify(success=True)


def create_app(config: Optional[Config] = None) -> Flask:
    """Build the app around one store file; consoles are created per request."""
    config = config or Config.from_env()
    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config["AMC_SESSION_CHECK_SECONDS"] = config.session_check_seconds
    app.config["AMC_SESSION_TTL_MINUTES"] = config.session_ttl_minutes
    app.config["AMC_PAGE_SIZE"] = config.page_size

    store = RecordStore(config.data_file)
    ensure_admin(store, config)
    app.extensions["amc_store"] = store
    app.register_blueprint(api)
    return app


if __name__ == "__main__":
    config = Config.from_env()
    logging.basicConfig(level=config.log_level)
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app(config).run(debug=True, host="0.0.0.0", port=5001)
