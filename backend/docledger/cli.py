# Overview: Flask CLI command groups for setup, document handling, stock and numbering.

# backend/docledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to docledger (PowerShell: $env:FLASK_APP="docledger").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init
#   Create tables if they do not exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system check-ledger
#   Verify total paid / balance due of every document against its payments.
#
# Documents:
# - python -m flask documents import invoice.json [--issue]
#   Create a draft (or a finalized document with --issue) from a JSON file.
# - python -m flask documents finalize 12 --actor "Ravi"
# - python -m flask documents pay 12 --amount 10000.00 --mode NEFT --key utr-123
# - python -m flask documents show 12 [--json]
# - python -m flask documents list --type INVOICE --status PENDING
# - python -m flask documents overdue --as-of 2026-03-31
#
# Stock:
# - python -m flask stock add-product --sku ECG-01 --name "ECG Machine" --price 45000.00 --tax-rate 12 --stock 3
# - python -m flask stock receive 1 5 --reference "GRN 44"
# - python -m flask stock low
# - python -m flask stock movements [--product-id 1] [--reference "SMINV 001"]
#
# Directory:
# - python -m flask directory add --code CLI-001 --name "City Hospital" --tax-id 29ABCDE1234F1Z5
#
# Numbering:
# - python -m flask numbering peek [INVOICE]

import json

import click
from flask.cli import with_appcontext

from .constants import DOCUMENT_TYPES, PAYMENT_MODES, PURPOSE_RESTOCK, MOVEMENT_PURPOSES, STATUS_DRAFT
from .errors import LedgerError
from .extensions import db
from .money import format_money
from .models import Document
from .repositories import get_repositories
from .services import (
    document_service,
    export_service,
    inventory_service,
    lookups,
    numbering_service,
    payment_service,
)
from .validation import ValidationError, coerce_money, coerce_rate, parse_document_payload


def _fail(message: str) -> None:
    click.echo(f"FAIL {message}")
    raise SystemExit(1)


def _echo_document_line(doc: Document) -> None:
    click.echo(
        f"  {doc.id:>5}  {doc.number:<12} {doc.document_type:<14} {doc.status:<8} "
        f"{doc.document_date.isoformat()}  total={format_money(doc.grand_total_cents):>12}  "
        f"due={format_money(doc.balance_due_cents):>12}  {doc.counterparty_name or ''}"
    )


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """Database setup and consistency checks."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    click.echo("START Initializing document ledger database...")
    db.create_all()
    click.echo("PASS Tables ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@system_group.command('check-ledger')
@with_appcontext
def check_ledger():
    """Compare stored payment totals with the payment rows of every finalized document."""
    problems = 0
    for doc in document_service.list_documents():
        if doc.status == STATUS_DRAFT:
            continue
        summary = payment_service.get_payment_summary(doc.id)
        balance_ok = doc.balance_due_cents == doc.grand_total_cents - doc.total_paid_cents
        if not summary["in_balance"] or not balance_ok:
            problems += 1
            click.echo(
                f"FAIL {doc.number}: stored paid={doc.total_paid_cents} "
                f"ledger={summary['ledger_total_cents']} balance={doc.balance_due_cents}"
            )
    if problems:
        raise SystemExit(1)
    click.echo("PASS All document balances match their payments.")


# =============================================================================
# DOCUMENTS
# =============================================================================

@click.group('documents')
def documents_group():
    """Create, finalize, pay and inspect documents."""


@documents_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--issue', is_flag=True, help='Finalize in the same transaction')
@click.option('--no-autofill', is_flag=True, help='Do not fill lines/counterparty from catalog and directory')
@with_appcontext
def import_document(path, issue, no_autofill):
    """Create a document from a JSON file."""
    with open(path, encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            _fail(f"{path} is not valid JSON: {exc}")

    try:
        kwargs = parse_document_payload(payload)
        if not no_autofill:
            repos = get_repositories()
            catalog = lookups.SqlCatalogLookup(repos)
            kwargs["items"] = [lookups.autofill_line(item, catalog) for item in kwargs["items"]]
            kwargs["counterparty"] = lookups.autofill_counterparty(
                kwargs["counterparty"], lookups.SqlDirectoryLookup(repos)
            )
        if issue:
            result = document_service.issue_document(**kwargs)
            doc = result.document
            for warning in result.warnings:
                click.echo(
                    f"WARN  Stock underflow: {warning.product_name} requested {warning.requested}, "
                    f"only {warning.available} on hand"
                )
        else:
            doc = document_service.create_document(**kwargs)
    except (LedgerError, ValidationError, ValueError) as exc:
        _fail(str(exc))

    click.echo(f"PASS Created {doc.document_type} {doc.number} (ID: {doc.id}, status {doc.status})")
    click.echo(f"     Grand total: {format_money(doc.grand_total_cents)}")


@documents_group.command('finalize')
@click.argument('document_id', type=int)
@click.option('--actor', default=None, help='Name recorded as finalizer')
@with_appcontext
def finalize(document_id, actor):
    """Finalize a draft document."""
    try:
        result = document_service.finalize_document(document_id, actor=actor)
    except LedgerError as exc:
        _fail(str(exc))

    doc = result.document
    if result.already_finalized:
        click.echo(f"WARN  {doc.number} was already finalized; nothing changed")
        return
    for warning in result.warnings:
        click.echo(
            f"WARN  Stock underflow: {warning.product_name} requested {warning.requested}, "
            f"only {warning.available} on hand"
        )
    click.echo(f"PASS Finalized {doc.number}: status {doc.status}, {len(result.movements)} stock movement(s)")
    if result.point_entry:
        click.echo(f"     {result.point_entry.points} point(s) credited")


@documents_group.command('pay')
@click.argument('document_id', type=int)
@click.option('--amount', required=True, help='Amount in major units, e.g. 10000.00')
@click.option('--mode', required=True, type=click.Choice(PAYMENT_MODES, case_sensitive=False))
@click.option('--date', 'payment_date', default=None, help='YYYY-MM-DD (default today)')
@click.option('--reference', default=None, help='Cheque number, UTR, etc.')
@click.option('--key', 'idempotency_key', default=None, help='Idempotency key')
@with_appcontext
def pay(document_id, amount, mode, payment_date, reference, idempotency_key):
    """Record a payment against a document."""
    try:
        doc = payment_service.apply_payment(
            document_id,
            coerce_money("amount", amount),
            mode.upper(),
            payment_date=payment_date,
            reference=reference,
            idempotency_key=idempotency_key,
        )
    except (LedgerError, ValidationError) as exc:
        _fail(str(exc))

    click.echo(
        f"PASS {doc.number}: paid {format_money(doc.total_paid_cents)}, "
        f"balance {format_money(doc.balance_due_cents)}, status {doc.status}"
    )


@documents_group.command('show')
@click.argument('document_id', type=int)
@click.option('--json', 'as_json', is_flag=True, help='Print the export shape as JSON')
@with_appcontext
def show(document_id, as_json):
    """Print a document."""
    try:
        doc = document_service.get_document(document_id)
        if as_json:
            click.echo(export_service.dumps_document(doc))
            return
        view = export_service.build_print_view(doc)
    except LedgerError as exc:
        _fail(str(exc))
    click.echo(export_service.PlainTextFormatter().render(view))


@documents_group.command('list')
@click.option('--type', 'document_type', type=click.Choice(DOCUMENT_TYPES, case_sensitive=False), default=None)
@click.option('--status', default=None)
@with_appcontext
def list_documents(document_type, status):
    """List documents, newest first."""
    docs = document_service.list_documents(
        document_type=document_type.upper() if document_type else None,
        status=status.upper() if status else None,
    )
    if not docs:
        click.echo("No documents found.")
        return
    click.echo(f"\nDocuments ({len(docs)}):")
    for doc in docs:
        _echo_document_line(doc)


@documents_group.command('overdue')
@click.option('--as-of', 'as_of', default=None, help='YYYY-MM-DD (default today)')
@with_appcontext
def overdue(as_of):
    """List finalized documents past their due date with a balance."""
    try:
        docs = document_service.list_overdue(as_of)
    except ValueError as exc:
        _fail(str(exc))
    if not docs:
        click.echo("No overdue documents.")
        return
    click.echo(f"\nOverdue ({len(docs)}):")
    for doc in docs:
        _echo_document_line(doc)


# =============================================================================
# STOCK
# =============================================================================

@click.group('stock')
def stock_group():
    """Catalog products and stock movements."""


@stock_group.command('add-product')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--price', default="0", help='Unit price in major units')
@click.option('--tax-rate', default="18", help='GST percent')
@click.option('--stock', default=0, type=int, help='Opening stock')
@click.option('--min-level', default=0, type=int)
@click.option('--category', default=None)
@click.option('--hsn', default=None)
@click.option('--model', default=None)
@click.option('--location', default=None)
@with_appcontext
def add_product(sku, name, price, tax_rate, stock, min_level, category, hsn, model, location):
    """Add a catalog product."""
    try:
        product = inventory_service.create_product(
            sku=sku,
            name=name,
            price_cents=coerce_money("price", price),
            tax_rate_bps=coerce_rate("tax-rate", tax_rate),
            stock_on_hand=stock,
            min_level=min_level,
            category=category,
            hsn=hsn,
            model=model,
            location=location,
        )
    except (LedgerError, ValidationError) as exc:
        _fail(str(exc))
    click.echo(f"PASS Created product {product.sku} (ID: {product.id}, stock {product.stock_on_hand})")


@stock_group.command('receive')
@click.argument('product_id', type=int)
@click.argument('quantity', type=int)
@click.option('--reference', default=None)
@click.option('--purpose', type=click.Choice(MOVEMENT_PURPOSES, case_sensitive=False), default=PURPOSE_RESTOCK)
@with_appcontext
def receive(product_id, quantity, reference, purpose):
    """Record incoming stock."""
    try:
        movement = inventory_service.receive_stock(product_id, quantity, reference=reference, purpose=purpose.upper())
    except LedgerError as exc:
        _fail(str(exc))
    product = inventory_service.get_product(movement.product_id)
    click.echo(f"PASS Received {quantity} x {product.sku}; on hand {product.stock_on_hand}")


@stock_group.command('low')
@with_appcontext
def low_stock():
    """List products below their minimum level."""
    products = inventory_service.list_low_stock()
    if not products:
        click.echo("PASS No products below minimum level.")
        return
    click.echo(f"\nLow stock ({len(products)}):")
    for p in products:
        click.echo(f"  {p.id:>5}  {p.sku:<16} {p.name:<32} on hand {p.stock_on_hand:>5}  min {p.min_level:>5}")


@stock_group.command('movements')
@click.option('--product-id', type=int, default=None)
@click.option('--reference', default=None)
@with_appcontext
def movements(product_id, reference):
    """List stock movements."""
    rows = inventory_service.list_movements(product_id=product_id, reference=reference)
    if not rows:
        click.echo("No movements found.")
        return
    for m in rows:
        click.echo(
            f"  {m.movement_date.isoformat()}  {m.direction:<3} {m.quantity:>5}  "
            f"product {m.product_id:<5} {m.purpose:<8} {m.reference or ''}"
        )


# =============================================================================
# DIRECTORY
# =============================================================================

@click.group('directory')
def directory_group():
    """Client and supplier directory."""


@directory_group.command('add')
@click.option('--code', required=True)
@click.option('--name', required=True)
@click.option('--hospital', default=None)
@click.option('--address', default=None)
@click.option('--tax-id', default=None, help='GSTIN')
@click.option('--email', default=None)
@click.option('--phone', default=None)
@with_appcontext
def add_counterparty(code, name, hospital, address, tax_id, email, phone):
    """Add a directory entry."""
    try:
        row = lookups.create_counterparty(
            code=code, name=name, hospital=hospital, address=address,
            tax_id=tax_id, email=email, phone=phone,
        )
    except LedgerError as exc:
        _fail(str(exc))
    click.echo(f"PASS Added {row.code}: {row.name}")


# =============================================================================
# NUMBERING
# =============================================================================

@click.group('numbering')
def numbering_group():
    """Document number sequences."""


@numbering_group.command('peek')
@click.argument('document_type', required=False, type=click.Choice(DOCUMENT_TYPES, case_sensitive=False))
@with_appcontext
def peek(document_type):
    """Show the next number per type without allocating it."""
    types = [document_type.upper()] if document_type else DOCUMENT_TYPES
    for dtype in types:
        click.echo(f"  {dtype:<14} {numbering_service.peek_next_number(dtype)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(documents_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(directory_group)
    app.cli.add_command(numbering_group)
