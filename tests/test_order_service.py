import threading

import pytest

from storecore.models import Cart, CartItem, Order
from storecore.services.errors import (
    CartNotFound,
    EmptyCart,
    InsufficientStock,
    InvalidPaymentStatus,
    InvalidStatus,
    OrderNotFound,
    TransactionFailure,
)
from storecore.services.order_service import OrderService


def _cart_rows(session_factory, user_id):
    with session_factory() as session:
        cart = session.query(Cart).filter(Cart.user_id == user_id).one()
        return session.query(CartItem).filter(CartItem.cart_id == cart.id).count()


def _order_count(session_factory):
    with session_factory() as session:
        return session.query(Order).count()


def test_place_order_end_to_end(order_service, cart_service, make_product, product_stock, session_factory):
    pid = make_product(price="20", weight="2", stock=5)
    cart_service.set_item("u1", pid, 2)

    order = order_service.place_order(user_id="u1")

    assert product_stock(pid) == 3
    assert order["total_amount"] == 70.0
    assert order["shipping_cost"] == 30.0
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["order_ref"]
    assert order["items"][0]["quantity"] == 2
    assert _cart_rows(session_factory, "u1") == 0


def test_totals_from_snapshot(order_service, cart_service, make_product):
    a = make_product(name="A", price="10", weight="2", stock=10)
    b = make_product(name="B", price="5", weight="1", stock=10)
    cart_service.set_item("u1", a, 2)
    cart_service.set_item("u1", b, 1)

    order = order_service.place_order(user_id="u1")

    assert order["total_amount"] == 55.0
    assert sorted(i["product_name_en"] for i in order["items"]) == ["A", "B"]


def test_order_references_are_unique(order_service, cart_service, make_product):
    pid = make_product(stock=10)
    refs = set()
    for _ in range(3):
        cart_service.set_item("u1", pid, 1)
        refs.add(order_service.place_order(user_id="u1")["order_ref"])
    assert len(refs) == 3


def test_empty_cart_rejected_without_writes(order_service, cart_service, make_product, session_factory):
    pid = make_product()
    cart_service.set_item("u1", pid, 1)
    cart_service.clear_cart("u1")

    with pytest.raises(EmptyCart):
        order_service.place_order(user_id="u1")
    assert _order_count(session_factory) == 0


def test_missing_cart(order_service):
    with pytest.raises(CartNotFound):
        order_service.place_order(user_id="nobody")


def test_invalid_status_rejected_before_touching_stock(order_service, cart_service, make_product, product_stock):
    pid = make_product(stock=5)
    cart_service.set_item("u1", pid, 2)

    with pytest.raises(InvalidStatus):
        order_service.place_order(user_id="u1", status="teleported")
    with pytest.raises(InvalidPaymentStatus):
        order_service.place_order(user_id="u1", payment_status="maybe")
    assert product_stock(pid) == 5


def test_status_parsing_is_case_insensitive(order_service, cart_service, make_product):
    pid = make_product()
    cart_service.set_item("u1", pid, 1)
    order = order_service.place_order(user_id="u1", status="Confirmed", payment_status="PAID")
    assert (order["status"], order["payment_status"]) == ("confirmed", "paid")


def test_insufficient_stock_rolls_back_everything(
    order_service, cart_service, make_product, product_stock, session_factory
):
    plenty = make_product(name="Plenty", stock=10)
    scarce = make_product(name="Scarce", stock=1)
    cart_service.set_item("u1", plenty, 3)
    cart_service.set_item("u1", scarce, 2)

    with pytest.raises(InsufficientStock) as excinfo:
        order_service.place_order(user_id="u1")

    assert excinfo.value.product_id == scarce
    assert "Scarce" in excinfo.value.message
    assert product_stock(plenty) == 10
    assert product_stock(scarce) == 1
    assert _order_count(session_factory) == 0
    assert _cart_rows(session_factory, "u1") == 2


def test_order_ref_replay_returns_existing_order(order_service, cart_service, make_product, product_stock):
    pid = make_product(stock=5)
    cart_service.set_item("u1", pid, 1)
    first = order_service.place_order(user_id="u1", order_ref="chg_1")
    cart_service.set_item("u1", pid, 1)

    again = order_service.place_order(user_id="u1", order_ref="chg_1")

    assert again["replayed"] is True
    assert again["id"] == first["id"]
    assert product_stock(pid) == 4


def test_created_event_published_after_commit(order_service, cart_service, make_product, hub):
    pid = make_product()
    cart_service.set_item("u1", pid, 1)
    sub = hub.subscribe()

    order = order_service.place_order(user_id="u1")

    message = sub.get(timeout=1)
    assert message is not None
    assert order["id"] in message
    assert '"event": "order.created"' in message


def test_notifier_failure_does_not_fail_the_order(session_factory, cart_service, make_product):
    class Broken:
        def publish(self, event, payload):
            raise RuntimeError("boom")

    service = OrderService(session_factory, notifier=Broken())
    pid = make_product()
    cart_service.set_item("u1", pid, 1)
    assert service.place_order(user_id="u1")["id"]


def test_storage_errors_become_transaction_failure(cart_service, make_product):
    class BrokenSession:
        def __enter__(self):
            from sqlalchemy.exc import OperationalError

            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        def __exit__(self, *exc):
            return False

    service = OrderService(lambda: BrokenSession())
    with pytest.raises(TransactionFailure):
        service.place_order(user_id="u1")


def test_concurrent_checkouts_never_oversell(order_service, cart_service, make_product, product_stock, session_factory):
    pid = make_product(stock=3)
    users = [f"buyer{i}" for i in range(6)]
    for uid in users:
        cart_service.set_item(uid, pid, 1)

    outcomes = []
    lock = threading.Lock()

    def checkout(uid):
        try:
            order_service.place_order(user_id=uid)
            result = "ok"
        except (InsufficientStock, TransactionFailure) as exc:
            result = type(exc).__name__
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=checkout, args=(uid,)) for uid in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    placed = outcomes.count("ok")
    assert len(outcomes) == len(users)
    assert placed <= 3
    assert product_stock(pid) == 3 - placed
    assert _order_count(session_factory) == placed


def test_admin_queries_and_transitions(order_service, cart_service, make_product):
    pid = make_product(stock=10)
    cart_service.set_item("u1", pid, 1)
    mine = order_service.place_order(user_id="u1")
    cart_service.set_item("u2", pid, 1)
    order_service.place_order(user_id="u2")

    listing = order_service.list_orders(page=1, page_size=10)
    assert listing["total"] == 2
    assert [o["user_id"] for o in order_service.list_user_orders("u1")] == ["u1"]
    assert order_service.get_order(mine["order_ref"])["id"] == mine["id"]

    # any status may follow any other
    assert order_service.update_status(mine["id"], "delivered")["status"] == "delivered"
    assert order_service.update_status(mine["id"], "pending")["status"] == "pending"
    assert order_service.update_payment_status(mine["id"], "refunded")["payment_status"] == "refunded"
    with pytest.raises(InvalidStatus):
        order_service.update_status(mine["id"], "lost")

    order_service.delete_order(mine["id"])
    with pytest.raises(OrderNotFound):
        order_service.get_order(mine["id"])
    with pytest.raises(OrderNotFound):
        order_service.delete_order(mine["id"])
