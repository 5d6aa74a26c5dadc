# Overview: Service-layer operations for inventory; stock counts and the movement log.

"""
Inventory Sync

Stock invariants:
- Product.stock_on_hand is never negative. A decrement larger than what is
  on hand removes what is there and reports a StockUnderflow warning.
- Every change to stock_on_hand writes a StockMovement in the same
  transaction. The movement carries the quantity actually moved.
- Document-driven movements use the document number as reference.

Locking:
- Products touched by one batch are locked in ascending id order, one row at
  a time; nothing locks the whole catalog.
- apply_finalize_movements never commits. It runs inside the finalize
  transaction of document_service, which guards it against running twice.
"""

from __future__ import annotations

from flask import current_app

from ..constants import DIRECTION_IN, DIRECTION_OUT, PURPOSE_RESTOCK, PURPOSE_DEMO, MOVEMENT_PURPOSES
from ..errors import LedgerError, InvalidAmount, UnknownProduct, StockUnderflow
from ..models import Product, StockMovement
from ..money import MAX_MONEY_CENTS
from ..repositories import get_repositories
from ..time_utils import today, parse_iso_date
from .concurrency import run_with_retry
from .totals_service import MAX_QUANTITY


def _check_quantity(quantity) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= MAX_QUANTITY:
        raise InvalidAmount(f"Quantity must be a whole number from 1 to {MAX_QUANTITY}", {"quantity": quantity})


def resolve_product_by_name(name: str, repos=None) -> Product | None:
    """
    Legacy resolution for lines written without a product id.

    Matches product name or SKU, case-insensitive and exact. When several
    products share a name the oldest one wins.
    """
    repos = repos or get_repositories()
    matches = repos.products.find_by_name(name)
    if len(matches) > 1:
        current_app.logger.warning(
            "Product name %r matches %d products; using id=%s", name, len(matches), matches[0].id
        )
    return matches[0] if matches else None


def _resolve_line_products(document, repos) -> dict[int, int]:
    """Map line id -> product id for every stock-tracked line."""
    resolved = {}
    for line in document.lines:
        if not line.track_stock:
            continue
        product_id = line.product_id
        if product_id is None:
            product = resolve_product_by_name(line.description, repos=repos)
            if product is None:
                raise UnknownProduct(
                    f"No product matches line '{line.description}'",
                    {"document": document.number, "position": line.position, "description": line.description},
                )
            product_id = product.id
            # Remember the match so the line carries a stable reference from now on
            line.product_id = product_id
        resolved[line.id] = product_id
    return resolved


def apply_finalize_movements(document, repos=None) -> tuple[list[StockMovement], list[StockUnderflow]]:
    """
    Apply the stock side effects of finalizing a document.

    Returns (movements, warnings). Document types not listed in
    STOCK_AFFECTING_TYPES produce neither.

    Raises:
        UnknownProduct: a tracked line cannot be resolved; the caller rolls
        back the whole finalize transaction.
    """
    rule = current_app.config["STOCK_AFFECTING_TYPES"].get(document.document_type)
    if rule is None:
        return [], []
    direction, purpose = rule

    repos = repos or get_repositories()
    line_products = _resolve_line_products(document, repos)
    if not line_products:
        return [], []

    products = {p.id: p for p in repos.products.lock_many(line_products.values())}
    missing = sorted(set(line_products.values()) - set(products))
    if missing:
        raise UnknownProduct(
            f"Product(s) {missing} not found",
            {"document": document.number, "product_ids": missing},
        )

    movement_date = today()
    movements: list[StockMovement] = []
    warnings: list[StockUnderflow] = []

    for line in document.lines:
        if line.id not in line_products:
            continue
        product = products[line_products[line.id]]

        if direction == DIRECTION_OUT:
            available = product.stock_on_hand
            moved = min(line.quantity, available)
            if moved < line.quantity:
                warning = StockUnderflow(
                    product_id=product.id,
                    product_name=product.name,
                    requested=line.quantity,
                    available=available,
                    reference=document.number,
                )
                warnings.append(warning)
                current_app.logger.warning(
                    "Stock underflow on %s: product %s (%s) requested=%d available=%d",
                    document.number, product.id, product.name, line.quantity, available,
                )
            product.stock_on_hand = available - moved
        else:
            moved = line.quantity
            product.stock_on_hand = product.stock_on_hand + moved

        if moved == 0:
            continue

        movement = StockMovement(
            product_id=product.id,
            document_id=document.id,
            quantity=moved,
            direction=direction,
            movement_date=movement_date,
            reference=document.number,
            purpose=purpose,
        )
        repos.movements.add(movement)
        movements.append(movement)

    repos.flush()
    return movements, warnings


def receive_stock(
    product_id: int,
    quantity: int,
    reference: str | None = None,
    purpose: str = PURPOSE_RESTOCK,
    movement_date=None,
    repos=None,
) -> StockMovement:
    """Record stock arriving (restock, demo unit returned) as an IN movement."""
    _check_quantity(quantity)
    if purpose not in MOVEMENT_PURPOSES:
        raise InvalidAmount(f"Unknown movement purpose: {purpose}", {"purpose": purpose})
    repos = repos or get_repositories()

    def _op():
        locked = repos.products.lock_many([product_id])
        if not locked:
            raise UnknownProduct(f"Product {product_id} not found", {"product_id": product_id})
        product = locked[0]

        product.stock_on_hand = product.stock_on_hand + quantity
        movement = StockMovement(
            product_id=product.id,
            quantity=quantity,
            direction=DIRECTION_IN,
            movement_date=parse_iso_date(movement_date) or today(),
            reference=reference,
            purpose=purpose,
        )
        repos.movements.add(movement)
        repos.commit()

        current_app.logger.info("Received %d x %s (%s)", quantity, product.sku, reference or purpose)
        return movement

    return run_with_retry(_op)


def remove_stock(
    product_id: int,
    quantity: int,
    reference: str | None = None,
    purpose: str = PURPOSE_DEMO,
    movement_date=None,
    repos=None,
) -> tuple[StockMovement | None, StockUnderflow | None]:
    """
    Record stock leaving outside a document (demo units, write-offs).

    Same floor rule as document finalization: clamp at zero and warn.
    """
    _check_quantity(quantity)
    if purpose not in MOVEMENT_PURPOSES:
        raise InvalidAmount(f"Unknown movement purpose: {purpose}", {"purpose": purpose})
    repos = repos or get_repositories()

    def _op():
        locked = repos.products.lock_many([product_id])
        if not locked:
            raise UnknownProduct(f"Product {product_id} not found", {"product_id": product_id})
        product = locked[0]

        available = product.stock_on_hand
        moved = min(quantity, available)
        warning = None
        if moved < quantity:
            warning = StockUnderflow(
                product_id=product.id,
                product_name=product.name,
                requested=quantity,
                available=available,
                reference=reference or purpose,
            )
            current_app.logger.warning(
                "Stock underflow: product %s requested=%d available=%d", product.id, quantity, available
            )
        product.stock_on_hand = available - moved

        movement = None
        if moved:
            movement = StockMovement(
                product_id=product.id,
                quantity=moved,
                direction=DIRECTION_OUT,
                movement_date=parse_iso_date(movement_date) or today(),
                reference=reference,
                purpose=purpose,
            )
            repos.movements.add(movement)
        repos.commit()
        return movement, warning

    return run_with_retry(_op)


def create_product(
    *,
    sku: str,
    name: str,
    price_cents: int = 0,
    tax_rate_bps: int = 1800,
    stock_on_hand: int = 0,
    min_level: int = 0,
    category: str | None = None,
    model: str | None = None,
    description: str | None = None,
    hsn: str | None = None,
    location: str | None = None,
    repos=None,
) -> Product:
    """
    Add a catalog product. Opening stock is recorded as a RESTOCK movement.
    """
    repos = repos or get_repositories()
    sku = (sku or "").strip()
    name = (name or "").strip()
    if not sku or not name:
        raise LedgerError("sku and name are required", {"sku": sku, "name": name})
    if not isinstance(price_cents, int) or not 0 <= price_cents <= MAX_MONEY_CENTS:
        raise InvalidAmount("price_cents out of range", {"price_cents": price_cents})
    if not isinstance(tax_rate_bps, int) or not 0 <= tax_rate_bps <= 10000:
        raise InvalidAmount("tax rate must be between 0% and 100%", {"tax_rate_bps": tax_rate_bps})
    if not isinstance(stock_on_hand, int) or not 0 <= stock_on_hand <= MAX_QUANTITY:
        raise InvalidAmount(f"stock_on_hand must be between 0 and {MAX_QUANTITY}", {"stock_on_hand": stock_on_hand})
    if repos.products.find_by_sku(sku) is not None:
        raise LedgerError(f"SKU {sku} already exists", {"sku": sku})

    try:
        product = Product(
            sku=sku,
            name=name,
            price_cents=price_cents,
            tax_rate_bps=tax_rate_bps,
            stock_on_hand=stock_on_hand,
            min_level=min_level,
            category=category,
            model=model,
            description=description,
            hsn=hsn,
            location=location,
        )
        repos.products.add(product)
        repos.flush()
        if stock_on_hand:
            repos.movements.add(StockMovement(
                product_id=product.id,
                quantity=stock_on_hand,
                direction=DIRECTION_IN,
                movement_date=today(),
                reference="OPENING",
                purpose=PURPOSE_RESTOCK,
            ))
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return product


def get_product(product_id: int, repos=None) -> Product:
    repos = repos or get_repositories()
    product = repos.products.get(product_id)
    if product is None:
        raise UnknownProduct(f"Product {product_id} not found", {"product_id": product_id})
    return product


def list_low_stock(repos=None) -> list[Product]:
    """Active products whose stock is below their minimum level."""
    repos = repos or get_repositories()
    return repos.products.list_low_stock()


def list_movements(product_id: int | None = None, reference: str | None = None, repos=None) -> list[StockMovement]:
    repos = repos or get_repositories()
    return repos.movements.list(product_id=product_id, reference=reference)
