# Overview: Service-layer operations for document numbering; allocates unique per-type numbers.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import NumberingConflict
from ..repositories import get_repositories
from .concurrency import run_with_retry


def _numbering_config(document_type: str) -> dict:
    numbering = current_app.config["DOCUMENT_NUMBERING"]
    if document_type not in numbering:
        raise ValueError(f"Unknown document type: {document_type}")
    return numbering[document_type]


def format_number(document_type: str, sequence: int) -> str:
    """
    Render a sequence index as a printed number.

    The first index (0) prints as the configured offset, e.g. "SMQ 137".
    """
    cfg = _numbering_config(document_type)
    return f"{cfg['prefix']} {cfg['offset'] + sequence:0{cfg['pad']}d}"


def next_number(document_type: str, repos=None) -> str:
    """
    Atomically allocate the next document number for a type.

    The counter row is bumped with a single UPDATE so concurrent callers
    never see the same value. The allocation is committed on its own:
    a number whose document is never written is simply skipped.
    """
    _numbering_config(document_type)
    repos = repos or get_repositories()

    def _op() -> str:
        current = repos.sequences.increment(document_type)
        if current is not None:
            allocated = current - 1
        else:
            try:
                repos.sequences.create(document_type, next_number=1)
                allocated = 0
            except IntegrityError:
                # Another caller created the row first
                repos.rollback()
                current = repos.sequences.increment(document_type)
                if current is None:
                    raise NumberingConflict(
                        f"Sequence for {document_type} could not be created",
                        {"document_type": document_type},
                    )
                allocated = current - 1

        repos.commit()
        return format_number(document_type, allocated)

    return run_with_retry(_op, attempts=5)


def peek_next_number(document_type: str, repos=None) -> str:
    """Number the next allocation will return; allocates nothing."""
    _numbering_config(document_type)
    repos = repos or get_repositories()
    current = repos.sequences.current(document_type)
    return format_number(document_type, current or 0)
