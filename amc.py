#!/usr/bin/env python3
"""
Command-line console for medical-equipment maintenance contracts.

Commands:
  list          - List maintenance records (filterable, paginated)
  show          - Show one maintenance record
  visits        - List the visits of a record
  contracts     - Show the contract history of a record
  reminders     - List contracts due for renewal
  add-user      - Create a user account
  add-visit     - Schedule or log a visit
  renew         - Start a new contract term on a record
  delete-record - Delete a maintenance record and its visits
"""

import argparse
import getpass
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from tabulate import tabulate

from biomed import (
    AuthService,
    Console,
    ConsoleError,
    MaintenanceFilters,
    MaintenanceRecord,
    RecordStore,
    Role,
    ServiceContract,
    Visit,
    create_user,
)
from biomed.calculations import format_display_date
from biomed.config import Config
from biomed.reminders import due_for_renewal, render_reminder

logger = logging.getLogger("amc")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_amount(amount: Optional[float]) -> str:
    """Format a contract amount for display."""
    return f"{amount:,.2f}" if amount is not None else "-"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def format_period(contract: ServiceContract) -> str:
    if not contract.service_start_date and not contract.service_end_date:
        return "-"
    start = format_display_date(contract.service_start_date)
    end = format_display_date(contract.service_end_date)
    return f"{start} - {end}"


def make_record_table(
    records: List[MaintenanceRecord], today: Optional[date] = None
) -> List[List[str]]:
    """Convert maintenance records to table rows."""
    rows = []
    for record in records:
        rows.append(
            [
                truncate(record.customer.name if record.customer else record.customer_id, 24),
                truncate(record.equipment.display_name if record.equipment else record.equipment_id, 24),
                record.serial_no,
                record.service_status or "-",
                format_period(record.live_contract),
                record.age(today),
                record.record_status(today).value,
                record.next_visit_date(),
            ]
        )
    return rows


def make_visit_table(visits: List[Visit]) -> List[List[str]]:
    """Convert visits to table rows."""
    rows = []
    for visit in visits:
        rows.append(
            [
                visit.id,
                visit.visit_status,
                format_display_date(visit.effective_date),
                visit.attended_by or "-",
                visit.equipment_status or "-",
                truncate(visit.work_done),
            ]
        )
    return rows


def make_contract_table(contracts: List[ServiceContract]) -> List[List[str]]:
    """Convert contract snapshots to table rows, oldest first."""
    rows = []
    for contract in contracts:
        rows.append(
            [
                contract.service_status or "-",
                format_period(contract),
                contract.invoice_number or "-",
                format_display_date(contract.invoice_date),
                format_amount(contract.amount),
                truncate(contract.notes),
            ]
        )
    return rows


# =============================================================================
# Session helpers
# =============================================================================


def open_console(args) -> Console:
    store = RecordStore(args.data_file)
    return Console(store, AuthService(store, args.config.session_ttl_minutes))


def login(console: Console, email: Optional[str]) -> bool:
    """Log in for a mutating command. Password comes from AMC_PASSWORD or a prompt."""
    if not email:
        print("Error: --email is required for this command")
        return False
    password = os.environ.get("AMC_PASSWORD") or getpass.getpass(f"Password for {email}: ")
    try:
        console.auth.login(email, password)
    except ConsoleError as e:
        print(f"Error: {e}")
        return False
    return True


def filters_from_args(args) -> MaintenanceFilters:
    """Map list-command flags onto MaintenanceFilters."""
    return MaintenanceFilters.from_mapping(
        {
            "customer_ids": args.customer,
            "equipment_ids": args.equipment,
            "serial_no": args.serial,
            "model_number": args.model,
            "service_statuses": args.status,
            "record_statuses": args.record_status,
            "installation_date_from": args.installed_from,
            "installation_date_to": args.installed_to,
            "warranty_end_date_from": args.warranty_end_from,
            "warranty_end_date_to": args.warranty_end_to,
            "service_start_date_from": args.service_start_from,
            "service_start_date_to": args.service_start_to,
            "service_end_date_from": args.service_end_from,
            "service_end_date_to": args.service_end_to,
            "service_date_from": args.service_from,
            "service_date_to": args.service_to,
            "age_min": args.age_min,
            "age_max": args.age_max,
        }
    )


# =============================================================================
# Read commands
# =============================================================================


def cmd_list(args):
    """List maintenance records."""
    console = open_console(args)
    try:
        filters = filters_from_args(args)
    except ValueError as e:
        print(f"Error: Invalid filter value: {e}")
        return 1

    page = console.list_maintenance(filters, args.page, args.page_size)

    print(f"Records: {len(console.records)}")
    for line in filters.describe():
        print(f"Filter: {line}")
    if page.total:
        print(f"Showing {page.first_index} to {page.last_index} of {page.total} (page {page.page}/{page.total_pages})")
    print()

    if not page.items:
        print("No maintenance records found.")
        return 0

    headers = ["Customer", "Equipment", "Serial No", "Status", "Service Period", "Age", "Record", "Next Visit"]
    print(tabulate(make_record_table(page.items), headers=headers, tablefmt="simple"))
    return 0


def cmd_show(args):
    """Show one maintenance record."""
    console = open_console(args)
    record = console.get_record(args.record_id)

    print(f"Record:        {record.id}")
    if record.customer:
        print(f"Customer:      {record.customer.name} ({record.customer.bio_medical_email})")
    if record.equipment:
        print(f"Equipment:     {record.equipment.display_name}")
    print(f"Serial no:     {record.serial_no}")
    print(f"Installed:     {format_display_date(record.installation_date)} ({record.age()})")
    print(f"Warranty end:  {format_display_date(record.warranty_end_date)}")
    print(f"Status:        {record.service_status} ({record.record_status().value})")
    print(f"Service:       {format_period(record.live_contract)}")
    if record.invoice_number:
        print(f"Invoice:       {record.invoice_number} on {format_display_date(record.invoice_date)}")
    print(f"Amount:        {format_amount(record.amount)}")
    print(f"Next visit:    {record.next_visit_date()}")
    print(f"Past terms:    {len(record.service_contracts)}")
    if record.notes:
        print(f"Notes:         {record.notes}")
    return 0


def cmd_visits(args):
    """List the visits of a record, newest first."""
    console = open_console(args)
    record = console.get_record(args.record_id)
    visits = record.get_visits_sorted(reverse=not args.asc)

    print(f"Serial no: {record.serial_no}")
    print(f"Next visit: {record.next_visit_date()}")
    print()

    if not visits:
        print("No visits found.")
        return 0

    headers = ["Id", "Status", "Date", "Attended By", "Equipment", "Work Done"]
    print(tabulate(make_visit_table(visits), headers=headers, tablefmt="simple"))
    return 0


def cmd_contracts(args):
    """Show archived contract terms followed by the live one."""
    console = open_console(args)
    record = console.get_record(args.record_id)

    print(f"Serial no: {record.serial_no}")
    print()

    if record.service_contracts:
        print("HISTORY:")
        print(
            tabulate(
                make_contract_table(record.service_contracts),
                headers=["Status", "Period", "Invoice", "Invoice Date", "Amount", "Notes"],
                tablefmt="simple",
            )
        )
        print()

    print("CURRENT:")
    print(
        tabulate(
            make_contract_table([record.live_contract]),
            headers=["Status", "Period", "Invoice", "Invoice Date", "Amount", "Notes"],
            tablefmt="simple",
        )
    )
    return 0


def cmd_reminders(args):
    """List contracts ending soon, with the reminder text."""
    console = open_console(args)
    days = args.days if args.days is not None else args.config.reminder_days
    due = due_for_renewal(console.records, days)

    print(f"Contracts ending within {days} days: {len(due)}")
    print()
    for record in due:
        to, subject, body = render_reminder(record)
        print(f"To: {to or '-'}")
        print(f"Subject: {subject}")
        print(body)
        print()
    return 0


# =============================================================================
# Mutating commands
# =============================================================================


def cmd_add_user(args):
    """Create a user. The first user of an empty store needs no login."""
    console = open_console(args)
    store = console.store
    if store.query("users"):
        if not login(console, args.email):
            return 1
        if console.auth.current_user_role() != Role.ADMIN:
            print("Error: Only an admin can create users")
            return 1
    password = os.environ.get("AMC_NEW_PASSWORD") or getpass.getpass(f"New password for {args.new_email}: ")
    row = create_user(store, args.new_email, password, args.role)
    print(f"Created {row['role']} user {row['email']}.")
    return 0


def cmd_add_visit(args):
    """Schedule a visit, or log an attended/closed one."""
    console = open_console(args)
    record = console.get_record(args.record_id)
    data = {
        "visit_status": args.status,
        "scheduled_date": args.scheduled,
        "visit_date": args.date,
        "work_done": args.work,
        "attended_by": args.by,
        "equipment_status": args.equipment_status,
        "comments": args.comments,
    }

    print(f"Adding {args.status} visit to {record.serial_no}:")
    for key, value in data.items():
        if value:
            print(f"  {key}: {value}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    if not login(console, args.email):
        return 1
    visit = console.add_visit(record.id, data)
    print(f"Visit {visit.id} saved.")
    return 0


def cmd_renew(args):
    """Archive the live contract and save new terms."""
    console = open_console(args)
    record = console.get_record(args.record_id)
    terms = {
        "service_status": args.status,
        "service_start_date": args.start,
        "service_end_date": args.end,
        "invoice_number": args.invoice,
        "invoice_date": args.invoice_date,
        "amount": args.amount,
        "notes": args.notes,
    }

    print(f"Renewing {record.serial_no}:")
    print(f"  Current: {record.service_status} {format_period(record.live_contract)}")
    print(f"  New:     {args.status} {args.start or '-'} - {args.end or '-'}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    if not login(console, args.email):
        return 1
    renewed = console.renew_maintenance(record.id, terms)
    print(f"Contract renewed; {len(renewed.service_contracts)} past term(s) on record.")
    return 0


def cmd_delete_record(args):
    """Delete a maintenance record and its visits (admin only)."""
    console = open_console(args)
    record = console.get_record(args.record_id)

    print(f"Deleting {record.serial_no} with {len(record.visits)} visit(s).")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    if not login(console, args.email):
        return 1
    removed = console.delete_maintenance(record.id)
    print(f"Record deleted ({removed} visit(s) removed).")
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Maintenance contract console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/amc.yaml list --status AMC,CAMC --record-status active
  %(prog)s data/amc.yaml list --age-min 0 --age-max 1
  %(prog)s data/amc.yaml list --service-end-from 2025-01-01 --service-end-to 2025-03-31
  %(prog)s data/amc.yaml visits <record-id>
  %(prog)s data/amc.yaml reminders --days 45
  %(prog)s data/amc.yaml add-visit <record-id> --scheduled 2025-07-01 --email ops@example.com
  %(prog)s data/amc.yaml renew <record-id> --status AMC --start 2025-04-01 \\
      --end 2026-03-31 --invoice INV-7 --invoice-date 2025-04-01 --amount 12000 --email ops@example.com
""",
    )
    parser.add_argument("data_file", type=Path, help="Path to the data YAML file")
    parser.add_argument("--email", type=str, help="Login email for commands that change data")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # List subcommand
    list_parser = subparsers.add_parser("list", help="List maintenance records")
    list_parser.add_argument("--customer", type=str, help="Customer ids (comma-separated)")
    list_parser.add_argument("--equipment", type=str, help="Equipment ids (comma-separated)")
    list_parser.add_argument("--serial", type=str, help="Serial numbers (comma-separated)")
    list_parser.add_argument("--model", type=str, help="Model numbers (comma-separated)")
    list_parser.add_argument(
        "--status", type=str, help='Service statuses (comma-separated, e.g., "AMC,CAMC")'
    )
    list_parser.add_argument(
        "--record-status", type=str, help="Record statuses: active, expired (comma-separated)"
    )
    for name in ("installed", "warranty-end", "service-start", "service-end", "service"):
        list_parser.add_argument(f"--{name}-from", type=str, help="Start date (YYYY-MM-DD)")
        list_parser.add_argument(f"--{name}-to", type=str, help="End date (YYYY-MM-DD)")
    list_parser.add_argument("--age-min", type=float, help="Minimum equipment age in years")
    list_parser.add_argument("--age-max", type=float, help="Maximum equipment age in years")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument(
        "--page-size", type=int, choices=[10, 25, 50, 100], default=None, help="Rows per page"
    )

    # Show / visits / contracts subcommands
    show_parser = subparsers.add_parser("show", help="Show one maintenance record")
    show_parser.add_argument("record_id", type=str)

    visits_parser = subparsers.add_parser("visits", help="List the visits of a record")
    visits_parser.add_argument("record_id", type=str)
    visits_parser.add_argument("--asc", action="store_true", help="Oldest first")

    contracts_parser = subparsers.add_parser("contracts", help="Show contract history")
    contracts_parser.add_argument("record_id", type=str)

    # Reminders subcommand
    reminders_parser = subparsers.add_parser("reminders", help="List contracts due for renewal")
    reminders_parser.add_argument("--days", type=int, help="Look-ahead window in days")

    # Add-user subcommand
    user_parser = subparsers.add_parser("add-user", help="Create a user account")
    user_parser.add_argument("new_email", type=str)
    user_parser.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)

    # Add-visit subcommand
    visit_parser = subparsers.add_parser("add-visit", help="Schedule or log a visit")
    visit_parser.add_argument("record_id", type=str)
    visit_parser.add_argument(
        "--status", choices=["Scheduled", "Attended", "Closed"], default="Scheduled"
    )
    visit_parser.add_argument("--scheduled", type=str, help="Scheduled date (YYYY-MM-DD)")
    visit_parser.add_argument("--date", type=str, help="Visit date (YYYY-MM-DD)")
    visit_parser.add_argument("--work", type=str, help="Work done")
    visit_parser.add_argument("--by", type=str, help="Who attended the visit")
    visit_parser.add_argument("--equipment-status", type=str, help="Equipment status after the visit")
    visit_parser.add_argument("--comments", type=str)
    visit_parser.add_argument("--dry-run", action="store_true", help="Show the visit without saving")

    # Renew subcommand
    renew_parser = subparsers.add_parser("renew", help="Start a new contract term")
    renew_parser.add_argument("record_id", type=str)
    renew_parser.add_argument("--status", type=str, required=True, help="New service status")
    renew_parser.add_argument("--start", type=str, help="Service start date (YYYY-MM-DD)")
    renew_parser.add_argument("--end", type=str, help="Service end date (YYYY-MM-DD)")
    renew_parser.add_argument("--invoice", type=str, help="Invoice number")
    renew_parser.add_argument("--invoice-date", type=str, help="Invoice date (YYYY-MM-DD)")
    renew_parser.add_argument("--amount", type=float, help="Contract amount")
    renew_parser.add_argument("--notes", type=str)
    renew_parser.add_argument("--dry-run", action="store_true", help="Show the renewal without saving")

    # Delete-record subcommand
    delete_parser = subparsers.add_parser("delete-record", help="Delete a record and its visits")
    delete_parser.add_argument("record_id", type=str)
    delete_parser.add_argument("--dry-run", action="store_true", help="Show what would be deleted")

    return parser


COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "visits": cmd_visits,
    "contracts": cmd_contracts,
    "reminders": cmd_reminders,
    "add-user": cmd_add_user,
    "add-visit": cmd_add_visit,
    "renew": cmd_renew,
    "delete-record": cmd_delete_record,
}


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    config = Config.from_env()
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")
    args.config = config
    if getattr(args, "page_size", 0) is None:
        args.page_size = config.page_size

    # Only add-user may start from an empty store
    if args.command != "add-user" and not args.data_file.exists():
        print(f"Error: File not found: {args.data_file}")
        return 1

    logger.debug("Running %s on %s", args.command, args.data_file)
    try:
        return COMMANDS[args.command](args)
    except ConsoleError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
