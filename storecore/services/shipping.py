"""Order totals and weight-tier shipping."""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Tuple


TWO_PLACES = Decimal("0.01")


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))


@dataclass(frozen=True)
class ShippingTable:
    """One ``block_cost`` charge per started ``block_weight`` of cart weight."""

    block_weight: int = 30
    block_cost: int = 30

    def cost(self, total_weight) -> Decimal:
        weight = _dec(total_weight)
        if weight <= 0:
            return Decimal("0.00")
        blocks = math.ceil(weight / Decimal(self.block_weight))
        return (Decimal(self.block_cost) * blocks).quantize(TWO_PLACES)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    total_weight: Decimal
    shipping_cost: Decimal
    total_amount: Decimal


def order_totals(lines: Iterable[Tuple[object, object, int]], table: ShippingTable) -> OrderTotals:
    """Sum ``(sale_price, weight, quantity)`` lines and add shipping."""
    subtotal = Decimal("0")
    total_weight = Decimal("0")
    for price, weight, quantity in lines:
        subtotal += _dec(price) * quantity
        total_weight += _dec(weight) * quantity
    shipping = table.cost(total_weight)
    return OrderTotals(
        subtotal=subtotal.quantize(TWO_PLACES),
        total_weight=total_weight,
        shipping_cost=shipping,
        total_amount=(subtotal + shipping).quantize(TWO_PLACES),
    )
