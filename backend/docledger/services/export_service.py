# Overview: Serialized document shape and the read-only print view handed to formatters.

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Protocol

from ..constants import STATUS_DRAFT
from ..errors import IncompleteDocument
from ..money import format_money, format_rate
from ..time_utils import to_iso_date, to_utc_z


def export_document(document) -> dict:
    """
    JSON-ready document: money as two-decimal strings, rates as percent
    strings, dates ISO-8601. Values are read from storage, never recomputed.
    """
    return {
        "id": document.id,
        "document_type": document.document_type,
        "number": document.number,
        "document_date": to_iso_date(document.document_date),
        "due_date": to_iso_date(document.due_date),
        "status": document.status,
        "counterparty": {
            "ref": document.counterparty_ref,
            "name": document.counterparty_name,
            "hospital": document.counterparty_hospital,
            "address": document.counterparty_address,
            "tax_id": document.counterparty_tax_id,
        },
        "items": [
            {
                "position": line.position,
                "product_id": line.product_id,
                "description": line.description,
                "model": line.model,
                "hsn": line.hsn,
                "quantity": line.quantity,
                "unit_price": format_money(line.unit_price_cents),
                "tax_rate": format_rate(line.tax_rate_bps),
                "amount": format_money(line.amount_cents),
                "taxable_base": format_money(line.taxable_base_cents),
                "tax": format_money(line.tax_cents),
                "price_with_tax": format_money(line.price_with_tax_cents),
                "track_stock": line.track_stock,
            }
            for line in document.lines
        ],
        "discount_policy": document.discount_policy,
        "discount": format_money(document.discount_cents),
        "freight": {
            "amount": format_money(document.freight_cents),
            "tax_rate": format_rate(document.freight_tax_rate_bps),
        },
        "totals": {
            "subtotal": format_money(document.subtotal_cents),
            "tax_total": format_money(document.tax_total_cents),
            "freight_tax": format_money(document.freight_tax_cents),
            "grand_total": format_money(document.grand_total_cents),
            "grand_total_clamped": document.grand_total_clamped,
        },
        "payments": [
            {
                "id": p.id,
                "payment_date": to_iso_date(p.payment_date),
                "amount": format_money(p.amount_cents),
                "mode": p.mode,
                "reference": p.reference,
                "idempotency_key": p.idempotency_key,
            }
            for p in document.payments
        ],
        "total_paid": format_money(document.total_paid_cents),
        "balance_due": format_money(document.balance_due_cents),
        "created_by": document.created_by,
        "finalized_at": to_utc_z(document.finalized_at) if document.finalized_at else None,
    }


def dumps_document(document, indent: int | None = 2) -> str:
    return json.dumps(export_document(document), indent=indent)


# =============================================================================
# PRINT VIEW
# =============================================================================

@dataclass(frozen=True)
class PrintLine:
    position: int
    description: str
    model: str | None
    hsn: str | None
    quantity: int
    unit_price: str
    tax_rate: str
    tax: str
    amount: str


@dataclass(frozen=True)
class PrintView:
    """Everything a print template needs, already formatted. Read-only."""
    document_type: str
    number: str
    document_date: str
    due_date: str | None
    counterparty_name: str
    counterparty_hospital: str | None
    counterparty_address: str | None
    counterparty_tax_id: str | None
    lines: tuple[PrintLine, ...]
    subtotal: str
    discount: str
    tax_total: str
    freight: str
    freight_tax: str
    grand_total: str
    total_paid: str
    balance_due: str
    status: str


class DocumentFormatter(Protocol):
    def render(self, view: PrintView) -> str: ...


def build_print_view(document) -> PrintView:
    """
    Raises:
        IncompleteDocument: drafts have no final totals to print
    """
    if document.status == STATUS_DRAFT or document.finalized_at is None:
        raise IncompleteDocument(
            f"{document.number} is a draft and cannot be printed",
            {"number": document.number},
        )
    return PrintView(
        document_type=document.document_type,
        number=document.number,
        document_date=to_iso_date(document.document_date),
        due_date=to_iso_date(document.due_date),
        counterparty_name=document.counterparty_name,
        counterparty_hospital=document.counterparty_hospital,
        counterparty_address=document.counterparty_address,
        counterparty_tax_id=document.counterparty_tax_id,
        lines=tuple(
            PrintLine(
                position=line.position,
                description=line.description,
                model=line.model,
                hsn=line.hsn,
                quantity=line.quantity,
                unit_price=format_money(line.unit_price_cents),
                tax_rate=format_rate(line.tax_rate_bps),
                tax=format_money(line.tax_cents),
                amount=format_money(line.amount_cents),
            )
            for line in document.lines
        ),
        subtotal=format_money(document.subtotal_cents),
        discount=format_money(document.discount_cents),
        tax_total=format_money(document.tax_total_cents),
        freight=format_money(document.freight_cents),
        freight_tax=format_money(document.freight_tax_cents),
        grand_total=format_money(document.grand_total_cents),
        total_paid=format_money(document.total_paid_cents),
        balance_due=format_money(document.balance_due_cents),
        status=document.status,
    )


class PlainTextFormatter:
    """Fixed-width text rendering used by the CLI."""

    def render(self, view: PrintView) -> str:
        out = [
            f"{view.document_type} {view.number}    Date: {view.document_date}",
            f"To: {view.counterparty_name}",
        ]
        if view.counterparty_hospital:
            out.append(f"    {view.counterparty_hospital}")
        if view.counterparty_address:
            out.append(f"    {view.counterparty_address}")
        if view.counterparty_tax_id:
            out.append(f"    GSTIN: {view.counterparty_tax_id}")
        out.append("")
        for line in view.lines:
            out.append(
                f"{line.position:>3}  {line.description[:32]:<32} {line.quantity:>5} x {line.unit_price:>12}"
                f"  @{line.tax_rate:>6}%  {line.amount:>14}"
            )
        out.append("")
        for label, value in (
            ("Subtotal", view.subtotal),
            ("Discount", view.discount),
            ("Tax", view.tax_total),
            ("Freight", view.freight),
            ("Freight tax", view.freight_tax),
            ("Grand total", view.grand_total),
            ("Paid", view.total_paid),
            ("Balance due", view.balance_due),
        ):
            out.append(f"{label:>60}  {value:>14}")
        out.append(f"{'Status':>60}  {view.status:>14}")
        return "\n".join(out)
