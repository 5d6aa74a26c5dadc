# Overview: Strict coercion of loosely-typed document payloads (JSON files, CLI options).

from __future__ import annotations

from typing import Any

from .money import parse_money, parse_rate
from .time_utils import parse_iso_date
from .services.totals_service import LineInput, Freight


class ValidationError(ValueError):
    """Malformed input payload; nothing has been written."""


DOCUMENT_FIELDS = {
    "document_type",
    "counterparty",
    "items",
    "discount",
    "freight",
    "document_date",
    "due_date",
    "created_by",
}
LINE_FIELDS = {
    "description",
    "quantity",
    "unit_price",
    "tax_rate",
    "product_id",
    "hsn",
    "model",
    "track_stock",
}
COUNTERPARTY_FIELDS = {"ref", "name", "hospital", "address", "tax_id"}


def coerce_int(key: str, value: Any) -> int:
    """
    Integers only: rejects floats, decimal strings and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_money(key: str, value: Any) -> int:
    """Major-unit decimal string or integer -> minor units."""
    if value is None:
        return 0
    try:
        return parse_money(value)
    except ValueError as exc:
        raise ValidationError(f"{key}: {exc}")


def coerce_rate(key: str, value: Any) -> int:
    """Percentage string or integer -> basis points."""
    try:
        return parse_rate(value)
    except ValueError as exc:
        raise ValidationError(f"{key}: {exc}")


def _reject_unknown(payload: dict, allowed: set[str], where: str) -> None:
    for k in payload.keys():
        if k not in allowed:
            raise ValidationError(f"Field not allowed in {where}: {k}")


def parse_line_item(payload: Any, index: int = 0) -> LineInput:
    """
    Turn one JSON line object into a LineInput.

    Range checks (quantity >= 1, rate 0-100%) are left to the totals
    calculator so every caller gets the same InvalidLineItem errors.
    """
    where = f"items[{index}]"
    if not isinstance(payload, dict):
        raise ValidationError(f"{where} must be an object")
    _reject_unknown(payload, LINE_FIELDS, where)

    if "quantity" not in payload:
        raise ValidationError(f"{where}.quantity is required")
    if "unit_price" not in payload:
        raise ValidationError(f"{where}.unit_price is required")

    product_id = payload.get("product_id")
    track_stock = payload.get("track_stock", True)
    if not isinstance(track_stock, bool):
        raise ValidationError(f"{where}.track_stock must be true or false")

    return LineInput(
        description=str(payload.get("description") or "").strip(),
        quantity=coerce_int(f"{where}.quantity", payload["quantity"]),
        unit_price_cents=coerce_money(f"{where}.unit_price", payload["unit_price"]),
        tax_rate_bps=coerce_rate(f"{where}.tax_rate", payload.get("tax_rate", 0)),
        product_id=coerce_int(f"{where}.product_id", product_id) if product_id is not None else None,
        hsn=(str(payload["hsn"]).strip() or None) if payload.get("hsn") is not None else None,
        model=(str(payload["model"]).strip() or None) if payload.get("model") is not None else None,
        track_stock=track_stock,
    )


def parse_counterparty(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("counterparty must be an object")
    _reject_unknown(payload, COUNTERPARTY_FIELDS, "counterparty")
    return {k: str(v).strip() for k, v in payload.items() if v is not None}


def parse_freight(payload: Any) -> Freight | None:
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise ValidationError("freight must be an object")
    _reject_unknown(payload, {"amount", "tax_rate"}, "freight")
    rate = payload.get("tax_rate")
    return Freight(
        amount_cents=coerce_money("freight.amount", payload.get("amount", 0)),
        tax_rate_bps=coerce_rate("freight.tax_rate", rate) if rate is not None else None,
    )


def parse_document_payload(payload: Any) -> dict:
    """
    Validate + normalize a document JSON object into keyword arguments for
    document_service.create_document / issue_document.

    Money is given in major units as decimal strings ("15000.00") and is
    converted exactly; floats are refused.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    _reject_unknown(payload, DOCUMENT_FIELDS, "document")

    if not payload.get("document_type"):
        raise ValidationError("Missing required fields: document_type")

    items = payload.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    try:
        document_date = parse_iso_date(payload.get("document_date"))
        due_date = parse_iso_date(payload.get("due_date"))
    except ValueError:
        raise ValidationError("dates must be ISO-8601 (YYYY-MM-DD)")

    return {
        "document_type": str(payload["document_type"]).strip().upper(),
        "counterparty": parse_counterparty(payload.get("counterparty")),
        "items": [parse_line_item(item, i) for i, item in enumerate(items)],
        "discount_cents": coerce_money("discount", payload.get("discount")),
        "freight": parse_freight(payload.get("freight")),
        "document_date": document_date,
        "due_date": due_date,
        "created_by": payload.get("created_by"),
    }
