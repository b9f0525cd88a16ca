"""
Resolución del estado de una factura

Un único punto decide el estado después de cada mutación que mueve saldos.
Las facturas guardan además base_status, el último estado que no proviene de
pagos (draft, unpaid, ordered, received...). Al revertir un pago es el estado
al que se vuelve.
"""
from decimal import Decimal
from typing import Optional
import enum

from app.common.exceptions import LedgerValidationError
from app.core.config import settings


class InvoiceKind(enum.Enum):
    SALE = "sale"
    PURCHASE = "purchase"


class SaleStatus(enum.Enum):
    DRAFT = "draft"
    UNPAID = "unpaid"
    SENT = "sent"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


class PurchaseStatus(enum.Enum):
    DRAFT = "draft"
    ORDERED = "ordered"
    RECEIVED = "received"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


CANCELLED = "cancelled"
TERMINAL_STATUSES = frozenset({CANCELLED})
PAYMENT_STATUSES = frozenset({"partial", "paid"})

BASE_STATUSES = {
    InvoiceKind.SALE: frozenset({"draft", "unpaid", "sent", "overdue", CANCELLED}),
    InvoiceKind.PURCHASE: frozenset({"draft", "ordered", "received", CANCELLED}),
}

# Estado "sin pagar" por defecto de cada tipo
UNPAID_DEFAULT = {
    InvoiceKind.SALE: SaleStatus.UNPAID.value,
    InvoiceKind.PURCHASE: PurchaseStatus.RECEIVED.value,
}


def _kind(kind) -> InvoiceKind:
    return kind if isinstance(kind, InvoiceKind) else InvoiceKind(kind)


def resolve_status(
    total: Decimal,
    amount_paid: Decimal,
    amount_due: Decimal,
    previous_status: Optional[str],
    kind,
    fallback_status: Optional[str] = None,
    epsilon: Optional[Decimal] = None
) -> str:
    """
    Siguiente estado de la factura, evaluado en orden:

    1. cancelled se conserva
    2. amount_due <= epsilon -> paid
    3. amount_paid > 0 -> partial
    4. si no, el estado base (fallback_status), el estado previo si no
       venía de pagos, o el "sin pagar" por defecto del tipo
    """
    kind = _kind(kind)
    eps = settings.BALANCE_EPSILON if epsilon is None else epsilon

    if previous_status in TERMINAL_STATUSES:
        return previous_status
    if Decimal(amount_due) <= eps:
        return "paid"
    if Decimal(amount_paid) > 0:
        return "partial"

    for candidate in (fallback_status, previous_status):
        if candidate and candidate in BASE_STATUSES[kind] and candidate not in TERMINAL_STATUSES:
            return candidate
    return UNPAID_DEFAULT[kind]


def base_status_for(kind, requested: Optional[str]) -> str:
    """
    Traducir el estado pedido al crear o actualizar a un estado base.

    partial/paid son derivados: en ventas el base pasa a ser "unpaid" y en
    compras "received" (pagar implica haber recibido la mercancía).
    """
    kind = _kind(kind)
    if not requested:
        return "draft"
    if requested in PAYMENT_STATUSES:
        return UNPAID_DEFAULT[kind]
    if requested not in BASE_STATUSES[kind]:
        raise LedgerValidationError(
            f"Estado '{requested}' no válido para facturas de tipo {kind.value}",
            status=requested
        )
    return requested


def goods_received(base_status: Optional[str]) -> bool:
    """Una compra mueve stock y saldo solo con la mercancía recibida."""
    return base_status == PurchaseStatus.RECEIVED.value
