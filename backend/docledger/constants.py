# Overview: Shared vocabulary for document kinds, lifecycle states and stock movements.

# =============================================================================
# DOCUMENT TYPES
# =============================================================================

DOC_QUOTATION = "QUOTATION"
DOC_CUSTOMER_PO = "CUSTOMER_PO"
DOC_SUPPLIER_PO = "SUPPLIER_PO"
DOC_SERVICE_ORDER = "SERVICE_ORDER"
DOC_INVOICE = "INVOICE"

DOCUMENT_TYPES = [
    DOC_QUOTATION,
    DOC_CUSTOMER_PO,
    DOC_SUPPLIER_PO,
    DOC_SERVICE_ORDER,
    DOC_INVOICE,
]


# =============================================================================
# DOCUMENT STATUS
# =============================================================================

STATUS_DRAFT = "DRAFT"
STATUS_PENDING = "PENDING"
STATUS_PARTIAL = "PARTIAL"
STATUS_PAID = "PAID"

FINALIZED_STATUSES = [STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID]


# =============================================================================
# DISCOUNT POLICIES
# =============================================================================

# Discount subtracted after the subtotal; tax computed on undiscounted amounts.
DISCOUNT_FLAT_POST_SUBTOTAL = "FLAT_POST_SUBTOTAL"
# Discount spread over lines by gross share; tax computed on discounted bases.
DISCOUNT_PROPORTIONAL_PER_ITEM = "PROPORTIONAL_PER_ITEM"

DISCOUNT_POLICIES = [DISCOUNT_FLAT_POST_SUBTOTAL, DISCOUNT_PROPORTIONAL_PER_ITEM]


# =============================================================================
# STOCK MOVEMENTS
# =============================================================================

DIRECTION_IN = "IN"
DIRECTION_OUT = "OUT"

PURPOSE_SALE = "SALE"
PURPOSE_SERVICE = "SERVICE"
PURPOSE_RESTOCK = "RESTOCK"
PURPOSE_DEMO = "DEMO"

MOVEMENT_PURPOSES = [PURPOSE_SALE, PURPOSE_SERVICE, PURPOSE_RESTOCK, PURPOSE_DEMO]


# =============================================================================
# PAYMENT MODES / OVERPAYMENT POLICY
# =============================================================================

MODE_CASH = "CASH"
MODE_CHEQUE = "CHEQUE"
MODE_BANK_TRANSFER = "BANK_TRANSFER"
MODE_NEFT = "NEFT"
MODE_UPI = "UPI"
MODE_CARD = "CARD"

PAYMENT_MODES = [
    MODE_CASH,
    MODE_CHEQUE,
    MODE_BANK_TRANSFER,
    MODE_NEFT,
    MODE_UPI,
    MODE_CARD,
]

OVERPAYMENT_ALLOW = "ALLOW"
OVERPAYMENT_REJECT = "REJECT"
OVERPAYMENT_CAP = "CAP"

OVERPAYMENT_POLICIES = [OVERPAYMENT_ALLOW, OVERPAYMENT_REJECT, OVERPAYMENT_CAP]


# =============================================================================
# LOYALTY
# =============================================================================

POINTS_CATEGORY_SALES = "SALES"
