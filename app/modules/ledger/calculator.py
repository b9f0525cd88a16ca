"""
Cálculo de totales de facturas

Todo el dinero es Decimal redondeado a 2 decimales (ROUND_HALF_UP); las
comparaciones usan la tolerancia BALANCE_EPSILON.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from app.core.config import settings

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def money_equal(a, b, epsilon: Optional[Decimal] = None) -> bool:
    eps = settings.BALANCE_EPSILON if epsilon is None else epsilon
    return abs(Decimal(a) - Decimal(b)) <= eps


@dataclass
class LineTotals:
    amount: Decimal
    tax_amount: Decimal


@dataclass
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    lines: List[LineTotals] = field(default_factory=list)


class LedgerCalculator:
    """Helper para calcular importes de línea y totales de factura"""

    @staticmethod
    def line_amount(
        quantity: Decimal,
        unit_price: Decimal,
        discount_percent: Decimal = Decimal("0"),
        amount: Optional[Decimal] = None
    ) -> Decimal:
        """quantity * unit_price * (1 - discount%/100), salvo importe explícito."""
        if amount is not None:
            return to_money(amount)
        gross = Decimal(quantity) * Decimal(unit_price)
        return to_money(gross * (1 - Decimal(discount_percent or 0) / HUNDRED))

    @staticmethod
    def line_tax(amount: Decimal, tax_percent: Decimal = Decimal("0")) -> Decimal:
        return to_money(Decimal(amount) * Decimal(tax_percent or 0) / HUNDRED)

    @classmethod
    def calculate_totals(cls, items: Iterable, discount_amount: Decimal = Decimal("0")) -> InvoiceTotals:
        """
        Totales de la factura

        Args:
            items: líneas con quantity, unit_price, discount_percent, tax_percent y amount opcional
            discount_amount: descuento global de la cabecera

        Returns:
            InvoiceTotals con total = subtotal + tax_amount - discount_amount
        """
        lines = []
        for item in items:
            amount = cls.line_amount(
                item.quantity,
                item.unit_price,
                getattr(item, "discount_percent", None),
                getattr(item, "amount", None)
            )
            lines.append(LineTotals(amount=amount, tax_amount=cls.line_tax(amount, getattr(item, "tax_percent", None))))

        subtotal = sum((line.amount for line in lines), Decimal("0"))
        tax_amount = sum((line.tax_amount for line in lines), Decimal("0"))
        discount = to_money(discount_amount or 0)

        return InvoiceTotals(
            subtotal=subtotal,
            tax_amount=tax_amount,
            discount_amount=discount,
            total=subtotal + tax_amount - discount,
            lines=lines
        )
