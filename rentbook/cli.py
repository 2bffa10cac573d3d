"""
rentbook CLI

Usage:
    python -m rentbook seed
    python -m rentbook add-property --house A001 --location "Kampala Central" --rent 800000
    python -m rentbook add-tenant --name "Jane Doe" --phone 0700000000
    python -m rentbook create-agreement --tenant TEN_ID --property PROP_ID --start 2026-01-01 --end 2026-12-31 --rent 800000
    python -m rentbook create-invoice --tenant TEN_ID --property PROP_ID --month 2026-01 --due 2026-01-05 --rent 800000
    python -m rentbook dashboard [--month 2026-10]
    python -m rentbook properties [--vacant]
    python -m rentbook tenants
    python -m rentbook invoices [--refresh] [--unpaid]
    python -m rentbook arrears
    python -m rentbook report --year 2026 --section revenue --period quarterly
    python -m rentbook report --year 2026 --section arrears --csv out/arrears.csv
    python -m rentbook add-expense --amount 50000 --category repairs --description "Gate hinge"
    python -m rentbook maintenance --property PROP_ID --cost 50000 --description "Repaint" --status completed
    python -m rentbook pay --invoice INV_ID --amount 400000 --mode mobile_money
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from rentbook.config import CONFIG_FILE, DATA_DIR, load_config
from rentbook.export import export_csv, rows_to_csv
from rentbook.ledger import RentBook
from rentbook.models import (
    BillingType,
    ExpenseCategory,
    MaintenanceStatus,
    MaintenanceType,
    PaymentMode,
    PropertyStatus,
    RentTerms,
)
from rentbook.record_store import FileBlobStore, RecordStore
from rentbook.reports import PERIODS, ReportGenerator
from rentbook.utils import format_currency, today_iso

logger = logging.getLogger("cli")

REPORT_SECTIONS = ["revenue", "expenses", "profitability", "categories", "arrears", "occupancy"]


def _positive_amount(value: str) -> float:
    try:
        amount = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if amount <= 0:
        raise argparse.ArgumentTypeError("amount must be a positive number")
    return amount


def _non_negative_amount(value: str) -> float:
    try:
        amount = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if amount < 0:
        raise argparse.ArgumentTypeError("amount must not be negative")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rentbook",
        description="rentbook -- rental property bookkeeping",
    )
    parser.add_argument("--data-dir", default=None,
                        help=f"Data directory (default: {DATA_DIR})")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # --- seed ---
    sub.add_parser("seed", help="Seed sample properties if none exist")

    # --- dashboard ---
    p_dash = sub.add_parser("dashboard", help="Key figures for a month")
    p_dash.add_argument("--month", default=None, help="Month (YYYY-MM, default: current)")

    # --- properties / tenants ---
    p_props = sub.add_parser("properties", help="List properties")
    p_props.add_argument("--vacant", action="store_true", help="Vacant only")
    sub.add_parser("tenants", help="List tenants")

    # --- invoices ---
    p_inv = sub.add_parser("invoices", help="List invoices")
    p_inv.add_argument("--refresh", action="store_true",
                       help="Rewrite stored statuses from payments and due dates")
    p_inv.add_argument("--unpaid", action="store_true", help="Outstanding invoices only")

    # --- arrears ---
    sub.add_parser("arrears", help="Arrears by tenant and property")

    # --- report ---
    p_rep = sub.add_parser("report", help="Yearly report section")
    p_rep.add_argument("--year", required=True, type=int, help="Report year")
    p_rep.add_argument("--section", choices=REPORT_SECTIONS, default="revenue",
                       help="Section (default: revenue)")
    p_rep.add_argument("--period", choices=PERIODS, default="monthly",
                       help="Bucket size for series sections (default: monthly)")
    p_rep.add_argument("--csv", dest="csv_path", default=None, help="Write rows to CSV file")
    p_rep.add_argument("--json", action="store_true", help="Print the full report as JSON")

    # --- add-expense ---
    p_exp = sub.add_parser("add-expense", help="Record an expense")
    p_exp.add_argument("--amount", required=True, type=_positive_amount, help="Amount")
    p_exp.add_argument("--category", required=True,
                       help=f"One of: {', '.join(c.value for c in ExpenseCategory)}")
    p_exp.add_argument("--description", required=True, help="Description")
    p_exp.add_argument("--date", default="", help="Date (YYYY-MM-DD, default: today)")
    p_exp.add_argument("--property", dest="property_id", default=None, help="Property ID")
    p_exp.add_argument("--provider", dest="service_provider", default=None,
                       help="Service provider")
    p_exp.add_argument("--receipt", dest="receipt_number", default=None, help="Receipt number")
    p_exp.add_argument("--notes", default=None, help="Notes")

    # --- maintenance ---
    p_mnt = sub.add_parser("maintenance", help="Record a maintenance job")
    p_mnt.add_argument("--property", dest="property_id", required=True, help="Property ID")
    p_mnt.add_argument("--description", required=True, help="Description")
    p_mnt.add_argument("--cost", type=_non_negative_amount, default=0.0, help="Cost")
    p_mnt.add_argument("--type", dest="maintenance_type", default="repairs",
                       help=f"One of: {', '.join(t.value for t in MaintenanceType)}")
    p_mnt.add_argument("--status", default="pending",
                       help=f"One of: {', '.join(s.value for s in MaintenanceStatus)}")
    p_mnt.add_argument("--date", default="", help="Date (YYYY-MM-DD, default: today)")
    p_mnt.add_argument("--provider", dest="service_provider", default=None,
                       help="Service provider")

    # --- pay ---
    p_pay = sub.add_parser("pay", help="Record a payment against an invoice")
    p_pay.add_argument("--invoice", dest="invoice_id", required=True, help="Invoice ID")
    p_pay.add_argument("--amount", required=True, type=_positive_amount, help="Amount")
    p_pay.add_argument("--mode", default="cash",
                       help=f"One of: {', '.join(m.value for m in PaymentMode)}")
    p_pay.add_argument("--date", default="", help="Payment date (YYYY-MM-DD, default: today)")
    p_pay.add_argument("--receipt", dest="receipt_number", default=None,
                       help="Receipt number (default: generated)")
    p_pay.add_argument("--notes", default=None, help="Notes")

    # --- property management ---
    p_addp = sub.add_parser("add-property", help="Register a property")
    p_addp.add_argument("--house", dest="house_number", required=True, help="House number")
    p_addp.add_argument("--location", required=True, help="Location")
    p_addp.add_argument("--type", dest="property_type", default="", help="Apartment, House, ...")
    p_addp.add_argument("--size", type=int, default=0, help="Number of rooms")
    p_addp.add_argument("--rent", dest="rent_rate", required=True, type=_positive_amount,
                        help="Monthly rent rate")
    p_addp.add_argument("--status", default="vacant",
                        help=f"One of: {', '.join(s.value for s in PropertyStatus)}")
    p_addp.add_argument("--meter", dest="electricity_meter", default="",
                        help="Electricity meter number")
    p_addp.add_argument("--water", dest="water_account", default="", help="Water account")
    p_addp.add_argument("--billing", dest="billing_type", default="postpaid",
                        help=f"One of: {', '.join(b.value for b in BillingType)}")

    p_updp = sub.add_parser("update-property", help="Change property fields")
    p_updp.add_argument("property_id", help="Property ID")
    p_updp.add_argument("--house", dest="house_number", default=None)
    p_updp.add_argument("--location", default=None)
    p_updp.add_argument("--type", dest="property_type", default=None)
    p_updp.add_argument("--size", type=int, default=None)
    p_updp.add_argument("--rent", dest="rent_rate", type=_positive_amount, default=None)
    p_updp.add_argument("--status", default=None)

    p_delp = sub.add_parser("delete-property", help="Remove a property")
    p_delp.add_argument("property_id", help="Property ID")

    p_vac = sub.add_parser("vacate", help="Mark a property vacant")
    p_vac.add_argument("property_id", help="Property ID")

    # --- tenant management ---
    p_addt = sub.add_parser("add-tenant", help="Register a tenant")
    p_addt.add_argument("--name", required=True, help="Full name")
    p_addt.add_argument("--id-passport", dest="id_passport", default="",
                        help="National ID or passport number")
    p_addt.add_argument("--phone", required=True, help="Phone number")
    p_addt.add_argument("--email", default=None, help="Email")
    p_addt.add_argument("--kin-name", default="", help="Next of kin name")
    p_addt.add_argument("--kin-phone", default="", help="Next of kin phone")
    p_addt.add_argument("--kin-relationship", default="", help="Next of kin relationship")
    p_addt.add_argument("--emergency-name", default="", help="Emergency contact name")
    p_addt.add_argument("--emergency-phone", default="", help="Emergency contact phone")

    p_updt = sub.add_parser("update-tenant", help="Change tenant fields")
    p_updt.add_argument("tenant_id", help="Tenant ID")
    p_updt.add_argument("--name", default=None)
    p_updt.add_argument("--id-passport", dest="id_passport", default=None)
    p_updt.add_argument("--phone", default=None)
    p_updt.add_argument("--email", default=None)

    p_delt = sub.add_parser("delete-tenant", help="Remove a tenant")
    p_delt.add_argument("tenant_id", help="Tenant ID")

    # --- agreements / invoices ---
    p_agr = sub.add_parser("create-agreement", help="Let a property to a tenant")
    p_agr.add_argument("--tenant", dest="tenant_id", required=True, help="Tenant ID")
    p_agr.add_argument("--property", dest="property_id", required=True, help="Property ID")
    p_agr.add_argument("--start", dest="start_date", required=True, help="Start (YYYY-MM-DD)")
    p_agr.add_argument("--end", dest="end_date", required=True, help="End (YYYY-MM-DD)")
    p_agr.add_argument("--rent", dest="rent_amount", required=True, type=_positive_amount,
                       help="Agreed rent")
    p_agr.add_argument("--deposit", dest="security_deposit", type=_non_negative_amount,
                       default=0.0, help="Security deposit")
    p_agr.add_argument("--terms", dest="rent_terms", default="monthly",
                       help=f"One of: {', '.join(t.value for t in RentTerms)}")
    p_agr.add_argument("--move-in", dest="move_in_date", default=None,
                       help="Move-in date (YYYY-MM-DD)")

    p_cinv = sub.add_parser("create-invoice", help="Bill a tenant for a month")
    p_cinv.add_argument("--tenant", dest="tenant_id", required=True, help="Tenant ID")
    p_cinv.add_argument("--property", dest="property_id", required=True, help="Property ID")
    p_cinv.add_argument("--month", required=True, help="Billing month (YYYY-MM)")
    p_cinv.add_argument("--due", dest="due_date", required=True, help="Due date (YYYY-MM-DD)")
    p_cinv.add_argument("--rent", dest="rent_amount", required=True, type=_positive_amount,
                        help="Rent amount")
    p_cinv.add_argument("--utilities", dest="utilities_amount", type=_non_negative_amount,
                        default=None, help="Utilities amount")

    return parser


def open_book(data_dir: Optional[str] = None) -> RentBook:
    """RentBook over the file store in *data_dir* (default: DATA_DIR)."""
    directory = Path(data_dir) if data_dir else DATA_DIR
    config = load_config(directory / CONFIG_FILE.name)
    return RentBook(RecordStore(FileBlobStore(directory)), config)


def _cli_main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point: python -m rentbook <command> [options]."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    book = open_book(args.data_dir)

    try:
        _dispatch_cli(args, book)
    except (KeyError, ValueError) as exc:
        print(f"\nError: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Unexpected error")
        print(f"\nFatal: {exc}", file=sys.stderr)
        return 2
    return 0


def _given(args: argparse.Namespace, *names: str) -> dict[str, Any]:
    """Options the user actually passed, for partial updates."""
    return {n: getattr(args, n) for n in names if getattr(args, n) is not None}


def _report_rows(report, section: str, period: str) -> list[Any]:
    if section == "revenue":
        return report.revenue.period(period)
    if section == "expenses":
        return report.expenses.period(period)
    if section == "profitability":
        return report.profitability.period(period)
    if section == "categories":
        return report.expenses_by_category
    if section == "arrears":
        return report.arrears.by_tenant
    return report.occupancy.by_property


def _dispatch_cli(args: argparse.Namespace, book: RentBook) -> None:
    """Dispatch CLI command to the appropriate handler."""
    currency = book.config["currency"]

    def money(amount: float) -> str:
        return format_currency(amount, currency)

    if args.command == "seed":
        if not book.config["seed_sample_data"]:
            print("Sample data disabled in config.")
            return
        count = book.initialize_sample_data()
        print(f"Seeded {count} sample properties." if count else "Properties already exist.")

    elif args.command == "dashboard":
        stats = book.dashboard(args.month)
        print("DASHBOARD")
        print(f"{'=' * 50}")
        print(f"  Properties:      {stats.total_properties} "
              f"({stats.occupied_properties} occupied, {stats.vacant_properties} vacant)")
        print(f"  Occupancy:       {stats.occupancy_rate:.1f}%")
        print(f"  Tenants:         {stats.total_tenants}")
        print(f"  Rent due:        {money(stats.monthly_rent_due)}")
        print(f"  Rent collected:  {money(stats.monthly_rent_collected)} "
              f"({stats.rent_collection_rate:.1f}%)")
        print(f"  Arrears:         {money(stats.total_arrears)}")
        print(f"  Expenses:        {money(stats.monthly_expenses)}")
        print(f"  Net cash flow:   {money(stats.net_cash_flow)}")
        activity = book.recent_activity()
        if activity:
            print("\n  Recent activity:")
            for item in activity:
                print(f"    {item.date}  {item.description:<35} {money(item.amount or 0)}")

    elif args.command == "properties":
        props = book.properties.vacant() if args.vacant else book.get_properties()
        if not props:
            print("No properties.")
        for p in props:
            print(f"  {p.id}  {p.display_name:<30} {p.status.value:<9} {money(p.rent_rate)}")

    elif args.command == "tenants":
        tenants = book.get_tenants()
        if not tenants:
            print("No tenants.")
        for t in tenants:
            agreements = book.agreements.for_tenant(t.id)
            print(f"  {t.id}  {t.name:<25} {t.phone:<15} {len(agreements)} agreement(s)")

    elif args.command == "invoices":
        if args.refresh:
            counts = book.resolver.refresh_all()
            print(f"Refreshed statuses: {counts}")
        invoices = book.unpaid_invoices() if args.unpaid else book.get_invoices()
        if not invoices:
            print("No invoices.")
        for inv in invoices:
            print(f"  {inv.id}  {inv.month}  {book.tenant_name(inv.tenant_id):<22} "
                  f"{inv.status.value:<8} {money(inv.total_amount)}  "
                  f"outstanding {money(book.outstanding(inv))}")

    elif args.command == "arrears":
        arrears = ReportGenerator(book.snapshot()).arrears()
        print("ARREARS BY TENANT")
        print(f"{'=' * 50}")
        for row in arrears.by_tenant:
            print(f"  {row.tenant_name:<22} {row.property_name:<25} {money(row.amount)}")
        print("\nARREARS BY PROPERTY")
        print(f"{'=' * 50}")
        for row in arrears.by_property:
            print(f"  {row.property_name:<30} {money(row.amount)}")
        print(f"\n  TOTAL: {money(arrears.total)}")

    elif args.command == "report":
        report = book.report(args.year)
        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
            return
        rows = _report_rows(report, args.section, args.period)
        if args.csv_path:
            written = export_csv(rows, args.csv_path)
            print(f"Wrote {written} rows to {args.csv_path}")
        else:
            print(rows_to_csv(rows) or "No data.")

    elif args.command == "add-expense":
        expense = book.add_expense(
            amount=args.amount,
            category=ExpenseCategory.from_string(args.category),
            description=args.description,
            date=args.date or today_iso(),
            property_id=args.property_id,
            service_provider=args.service_provider,
            receipt_number=args.receipt_number,
            notes=args.notes,
        )
        print(f"Recorded expense {expense.id}: {money(expense.amount)} "
              f"{expense.category.value} -- {expense.description}")

    elif args.command == "maintenance":
        record, expense = book.record_maintenance(
            property_id=args.property_id,
            date=args.date or today_iso(),
            description=args.description,
            cost=args.cost,
            maintenance_type=MaintenanceType.from_string(args.maintenance_type),
            service_provider=args.service_provider,
            status=MaintenanceStatus.from_string(args.status),
        )
        print(f"Recorded maintenance {record.id} ({record.status.value})")
        if expense is not None:
            print(f"  Booked expense {expense.id}: {money(expense.amount)}")

    elif args.command == "pay":
        payment = book.record_payment(
            invoice_id=args.invoice_id,
            amount=args.amount,
            payment_date=args.date or today_iso(),
            payment_mode=PaymentMode.from_string(args.mode),
            receipt_number=args.receipt_number,
            notes=args.notes,
        )
        if payment is None:
            raise KeyError(f"Invoice not found: {args.invoice_id}")
        invoice = book.invoices.get(payment.invoice_id)
        print(f"Recorded payment {payment.id}: {money(payment.amount)} "
              f"receipt {payment.receipt_number}")
        if invoice is not None:
            print(f"  Invoice {invoice.id} is now {invoice.status.value}")

    elif args.command == "add-property":
        prop = book.add_property(
            house_number=args.house_number,
            location=args.location,
            property_type=args.property_type,
            size=args.size,
            rent_rate=args.rent_rate,
            status=PropertyStatus.from_string(args.status),
            utilities={
                "electricity_meter": args.electricity_meter,
                "water_account": args.water_account,
                "billing_type": BillingType.from_string(args.billing_type),
            },
        )
        print(f"Added property {prop.id}: {prop.display_name} ({money(prop.rent_rate)})")

    elif args.command == "update-property":
        changes = _given(args, "house_number", "location", "property_type", "size",
                         "rent_rate", "status")
        if "status" in changes:
            changes["status"] = PropertyStatus.from_string(changes["status"])
        prop = book.update_property(args.property_id, **changes)
        if prop is None:
            raise KeyError(f"Property not found: {args.property_id}")
        print(f"Updated property {prop.id}: {', '.join(sorted(changes)) or 'no changes'}")

    elif args.command == "delete-property":
        if not book.delete_property(args.property_id):
            raise KeyError(f"Property not found: {args.property_id}")
        print(f"Deleted property {args.property_id}")

    elif args.command == "vacate":
        prop = book.vacate_property(args.property_id)
        if prop is None:
            raise KeyError(f"Property not found: {args.property_id}")
        print(f"{prop.display_name} is now vacant")

    elif args.command == "add-tenant":
        tenant = book.add_tenant(
            name=args.name,
            id_passport=args.id_passport,
            phone=args.phone,
            email=args.email,
            next_of_kin={"name": args.kin_name, "phone": args.kin_phone,
                         "relationship": args.kin_relationship},
            emergency_contact={"name": args.emergency_name, "phone": args.emergency_phone},
        )
        print(f"Added tenant {tenant.id}: {tenant.name}")

    elif args.command == "update-tenant":
        changes = _given(args, "name", "id_passport", "phone", "email")
        tenant = book.update_tenant(args.tenant_id, **changes)
        if tenant is None:
            raise KeyError(f"Tenant not found: {args.tenant_id}")
        print(f"Updated tenant {tenant.id}: {', '.join(sorted(changes)) or 'no changes'}")

    elif args.command == "delete-tenant":
        if not book.delete_tenant(args.tenant_id):
            raise KeyError(f"Tenant not found: {args.tenant_id}")
        print(f"Deleted tenant {args.tenant_id}")

    elif args.command == "create-agreement":
        if book.tenants.get(args.tenant_id) is None:
            raise KeyError(f"Tenant not found: {args.tenant_id}")
        if book.properties.get(args.property_id) is None:
            raise KeyError(f"Property not found: {args.property_id}")
        agreement = book.create_agreement(
            tenant_id=args.tenant_id,
            property_id=args.property_id,
            start_date=args.start_date,
            end_date=args.end_date,
            security_deposit=args.security_deposit,
            rent_amount=args.rent_amount,
            rent_terms=RentTerms.from_string(args.rent_terms),
            move_in_date=args.move_in_date,
        )
        print(f"Created agreement {agreement.id}: {book.tenant_name(agreement.tenant_id)} "
              f"-> {book.property_name(agreement.property_id)}")

    elif args.command == "create-invoice":
        invoice = book.create_invoice(
            tenant_id=args.tenant_id,
            property_id=args.property_id,
            due_date=args.due_date,
            rent_amount=args.rent_amount,
            month=args.month,
            utilities_amount=args.utilities_amount,
        )
        print(f"Created invoice {invoice.id} for {invoice.month}: "
              f"{money(invoice.total_amount)} due {invoice.due_date}")

    else:
        raise ValueError(f"Unknown command: {args.command}")


def main() -> None:
    """Module entry point."""
    sys.exit(_cli_main())


if __name__ == "__main__":
    main()
