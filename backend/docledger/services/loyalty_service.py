# Overview: Service-layer operations for loyalty points earned on invoices.

from __future__ import annotations

from flask import current_app

from ..constants import POINTS_CATEGORY_SALES
from ..models import PointAccount, PointHistoryEntry
from ..repositories import get_repositories
from ..time_utils import today

# Grand totals are in minor units; points are earned per 1000 major units.
_MINOR_PER_THOUSAND = 1000 * 100


def points_for_total(grand_total_cents: int) -> int:
    """floor(grand_total / 1000 * rate), exact on minor units."""
    per_thousand = current_app.config["LOYALTY_POINTS_PER_THOUSAND"]
    if grand_total_cents <= 0:
        return 0
    return (grand_total_cents * per_thousand) // _MINOR_PER_THOUSAND


def holder_for_document(document) -> str:
    return (document.created_by or "").strip() or current_app.config["LOYALTY_DEFAULT_HOLDER"]


def _get_or_create_account(holder: str, repos) -> PointAccount:
    account = repos.points.get_account(holder, for_update=True)
    if account is None:
        account = PointAccount(holder=holder, points_balance=0, lifetime_points_earned=0)
        repos.points.add_account(account)
    return account


def accrue_for_document(document, repos=None) -> PointHistoryEntry | None:
    """
    Credit sales points for a finalized invoice.

    Runs inside the finalize transaction and never commits. Returns None when
    the document type earns nothing, the total is too small, or the document
    was already credited.
    """
    if document.document_type not in current_app.config["LOYALTY_DOCUMENT_TYPES"]:
        return None

    points = points_for_total(document.grand_total_cents)
    if points <= 0:
        return None

    repos = repos or get_repositories()
    if repos.points.entry_exists(document.id, POINTS_CATEGORY_SALES):
        return None

    holder = holder_for_document(document)
    account = _get_or_create_account(holder, repos)

    entry = PointHistoryEntry(
        account_id=account.id,
        document_id=document.id,
        entry_date=today(),
        points=points,
        category=POINTS_CATEGORY_SALES,
        description=f"Sales points for invoice {document.number}",
    )
    repos.points.add_entry(entry)

    account.points_balance = account.points_balance + points
    account.lifetime_points_earned = account.lifetime_points_earned + points
    repos.flush()

    current_app.logger.info("Credited %d points to %s for %s", points, holder, document.number)
    return entry


def get_point_balance(holder: str, repos=None) -> int:
    repos = repos or get_repositories()
    account = repos.points.get_account(holder)
    return account.points_balance if account else 0


def list_point_history(holder: str, repos=None) -> list[PointHistoryEntry]:
    repos = repos or get_repositories()
    return repos.points.list_entries(holder)
