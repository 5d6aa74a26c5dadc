# backend/docledger/config.py
from __future__ import annotations
import os

from .constants import (
    DOC_QUOTATION,
    DOC_CUSTOMER_PO,
    DOC_SUPPLIER_PO,
    DOC_SERVICE_ORDER,
    DOC_INVOICE,
    DISCOUNT_FLAT_POST_SUBTOTAL,
    DISCOUNT_PROPORTIONAL_PER_ITEM,
    DIRECTION_OUT,
    PURPOSE_SALE,
    PURPOSE_SERVICE,
    OVERPAYMENT_ALLOW,
)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/docledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///docledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Document numbers render as "<prefix> <offset + sequence, zero padded>".
    # Offsets continue the numbering series already printed on paper.
    DOCUMENT_NUMBERING = {
        DOC_QUOTATION: {"prefix": "SMQ", "offset": 137, "pad": 3},
        DOC_CUSTOMER_PO: {"prefix": "SMCPO", "offset": 151, "pad": 3},
        DOC_SUPPLIER_PO: {"prefix": "SMPOC", "offset": 101, "pad": 3},
        DOC_SERVICE_ORDER: {"prefix": "SMCSO", "offset": 201, "pad": 3},
        DOC_INVOICE: {"prefix": "SMINV", "offset": 1, "pad": 3},
    }
    NUMBERING_CONFLICT_RETRIES = 5

    DISCOUNT_POLICIES = {
        DOC_QUOTATION: DISCOUNT_FLAT_POST_SUBTOTAL,
        DOC_CUSTOMER_PO: DISCOUNT_FLAT_POST_SUBTOTAL,
        DOC_SUPPLIER_PO: DISCOUNT_FLAT_POST_SUBTOTAL,
        DOC_SERVICE_ORDER: DISCOUNT_FLAT_POST_SUBTOTAL,
        DOC_INVOICE: DISCOUNT_PROPORTIONAL_PER_ITEM,
    }
    # Document types whose freight line carries GST.
    FREIGHT_TAXABLE = {
        DOC_QUOTATION: True,
        DOC_CUSTOMER_PO: True,
        DOC_SUPPLIER_PO: True,
        DOC_SERVICE_ORDER: True,
        DOC_INVOICE: True,
    }
    DEFAULT_FREIGHT_TAX_RATE_BPS = 1800

    # Document types that move stock when finalized: type -> (direction, purpose)
    STOCK_AFFECTING_TYPES = {
        DOC_INVOICE: (DIRECTION_OUT, PURPOSE_SALE),
        DOC_SERVICE_ORDER: (DIRECTION_OUT, PURPOSE_SERVICE),
    }

    # ALLOW | REJECT | CAP
    OVERPAYMENT_POLICY = os.environ.get("OVERPAYMENT_POLICY", OVERPAYMENT_ALLOW)

    LOYALTY_DOCUMENT_TYPES = [DOC_INVOICE]
    LOYALTY_POINTS_PER_THOUSAND = 2
    LOYALTY_DEFAULT_HOLDER = "System"
