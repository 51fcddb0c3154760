from decimal import Decimal

import pytest

from storecore.services.shipping import ShippingTable, order_totals


@pytest.mark.parametrize(
    "weight, expected",
    [
        (0, "0.00"),
        ("0.5", "30.00"),
        (30, "30.00"),
        ("30.001", "60.00"),
        (60, "60.00"),
        (61, "90.00"),
    ],
)
def test_shipping_tiers(weight, expected):
    assert ShippingTable().cost(weight) == Decimal(expected)


def test_shipping_is_monotone():
    table = ShippingTable()
    costs = [table.cost(Decimal(w) / 4) for w in range(0, 400)]
    assert costs == sorted(costs)


def test_custom_block_size():
    assert ShippingTable(block_weight=10, block_cost=5).cost(21) == Decimal("15.00")


def test_order_totals_adds_shipping_to_subtotal():
    totals = order_totals([("10", "2", 2), ("5", "1", 1)], ShippingTable())
    assert totals.subtotal == Decimal("25.00")
    assert totals.total_weight == Decimal("5")
    assert totals.shipping_cost == Decimal("30.00")
    assert totals.total_amount == Decimal("55.00")


def test_order_totals_weightless_cart_ships_free():
    totals = order_totals([("12.50", "0", 2)], ShippingTable())
    assert totals.shipping_cost == Decimal("0.00")
    assert totals.total_amount == Decimal("25.00")
