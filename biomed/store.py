"""YAML-backed record store.

All collections live in one YAML document. Every operation loads the file,
applies its change and writes the whole document back, so concurrent writers
follow last-write-wins.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .errors import RecordNotFound, StoreError

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "customers",
    "equipment",
    "maintenance_records",
    "maintenance_visits",
    "users",
)

# relation name -> (target collection, foreign key, cardinality)
RELATIONS: Dict[str, Dict[str, Tuple[str, str, str]]] = {
    "maintenance_records": {
        "customer": ("customers", "customer_id", "one"),
        "equipment": ("equipment", "equipment_id", "one"),
        "visits": ("maintenance_visits", "maintenance_record_id", "many"),
    },
    "maintenance_visits": {
        "maintenance_record": ("maintenance_records", "maintenance_record_id", "one"),
    },
}
MAINTENANCE_RELATIONS = ("customer", "equipment", "visits")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class RecordStore:
    """Generic insert/update/delete/query-with-relations over a YAML file."""

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)

    # -------------------------------------------------------------------------
    # File I/O
    # -------------------------------------------------------------------------

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.filename.exists():
            data = {}
        else:
            try:
                with open(self.filename, "r") as fp:
                    data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.exception("Failed to read %s", self.filename)
                raise StoreError(f"Failed to read {self.filename}: {e}")
        for name in COLLECTIONS:
            if data.get(name) is None:
                data[name] = []
        return data

    def _dump(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            self.filename.parent.mkdir(parents=True, exist_ok=True)
            with open(self.filename, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
        except OSError as e:
            logger.exception("Failed to write %s", self.filename)
            raise StoreError(f"Failed to write {self.filename}: {e}")

    @staticmethod
    def _rows(data, collection: str) -> List[Dict[str, Any]]:
        if collection not in COLLECTIONS:
            raise StoreError(f"Unknown collection '{collection}'")
        return data[collection]

    @staticmethod
    def _find(rows: List[Dict[str, Any]], collection: str, record_id: str) -> int:
        for index, row in enumerate(rows):
            if row.get("id") == record_id:
                return index
        raise RecordNotFound(f"No {collection} row with id '{record_id}'")

    def _join(self, data, collection: str, row: Dict[str, Any], relations: Iterable[str]):
        joined = copy.deepcopy(row)
        for name in relations:
            try:
                target, foreign_key, cardinality = RELATIONS[collection][name]
            except KeyError:
                raise StoreError(f"Unknown relation '{name}' on '{collection}'")
            if cardinality == "one":
                key = row.get(foreign_key)
                match = next((r for r in data[target] if r.get("id") == key), None)
                joined[name] = copy.deepcopy(match)
            else:
                joined[name] = [
                    copy.deepcopy(r) for r in data[target] if r.get(foreign_key) == row.get("id")
                ]
        return joined

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def query(self, collection: str, relations: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """Fetch all rows of a collection in insertion order, with relations joined."""
        data = self._load()
        relations = tuple(relations)
        return [self._join(data, collection, row, relations) for row in self._rows(data, collection)]

    def get(
        self, collection: str, record_id: str, relations: Iterable[str] = ()
    ) -> Optional[Dict[str, Any]]:
        data = self._load()
        for row in self._rows(data, collection):
            if row.get("id") == record_id:
                return self._join(data, collection, row, tuple(relations))
        return None

    def insert(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row, assigning id and timestamps. Returns the stored row."""
        data = self._load()
        rows = self._rows(data, collection)
        timestamp = _now()
        row = {"id": str(uuid.uuid4()), **copy.deepcopy(payload)}
        row["created_at"] = timestamp
        row["updated_at"] = timestamp
        rows.append(row)
        self._dump(data)
        logger.debug("Inserted %s/%s", collection, row["id"])
        return copy.deepcopy(row)

    def update(self, collection: str, record_id: str, payload: Dict[str, Any]) -> None:
        """Overwrite the given fields of a row (field-level last write wins)."""
        data = self._load()
        rows = self._rows(data, collection)
        index = self._find(rows, collection, record_id)
        changes = {k: v for k, v in copy.deepcopy(payload).items() if k not in ("id", "created_at")}
        rows[index].update(changes)
        rows[index]["updated_at"] = _now()
        self._dump(data)
        logger.debug("Updated %s/%s", collection, record_id)

    def delete(self, collection: str, record_id: str) -> None:
        data = self._load()
        rows = self._rows(data, collection)
        del rows[self._find(rows, collection, record_id)]
        self._dump(data)
        logger.debug("Deleted %s/%s", collection, record_id)

    def delete_where(self, collection: str, foreign_key: str, value: str) -> int:
        """Delete every row whose foreign_key equals value. Returns the count."""
        data = self._load()
        rows = self._rows(data, collection)
        kept = [row for row in rows if row.get(foreign_key) != value]
        removed = len(rows) - len(kept)
        if removed:
            data[collection] = kept
            self._dump(data)
        return removed

    def check_references(self, collection: str, foreign_key: str, record_id: str) -> int:
        """Count rows in collection whose foreign_key points at record_id."""
        data = self._load()
        return sum(1 for row in self._rows(data, collection) if row.get(foreign_key) == record_id)

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        data = self._load()
        for row in self._rows(data, collection):
            if row.get(field) == value:
                return copy.deepcopy(row)
        return None
