import pytest

from storecore.models import Product
from storecore.services.errors import CartItemNotFound, CartNotFound, ProductNotFound, ValidationError


def test_empty_cart_view(cart_service):
    view = cart_service.get_cart("u1")
    assert view == {"cart_id": None, "items": [], "subtotal": 0.0, "item_count": 0}


def test_add_then_set_quantity(cart_service, make_product):
    pid = make_product(price="12.50")

    item, created = cart_service.set_item("u1", pid, 2)
    assert created is True
    assert item["quantity"] == 2

    item, created = cart_service.set_item("u1", pid, 5)
    assert created is False
    assert item["quantity"] == 5

    view = cart_service.get_cart("u1")
    assert view["item_count"] == 5
    assert view["subtotal"] == 62.5
    assert len(view["items"]) == 1


def test_snapshot_is_taken_when_the_line_is_created(cart_service, make_product, session_factory):
    pid = make_product(name="Pan", price="10")
    cart_service.set_item("u1", pid, 1)
    with session_factory() as session:
        product = session.query(Product).filter(Product.id == pid).one()
        product.sale_price = 99
        product.name_en = "Renamed"

    item, _ = cart_service.set_item("u1", pid, 3)

    assert item["sale_price"] == 10.0
    assert item["product_name_en"] == "Pan"


def test_rejects_bad_quantity_and_unknown_product(cart_service, make_product):
    pid = make_product()
    with pytest.raises(ValidationError):
        cart_service.set_item("u1", pid, 0)
    with pytest.raises(ValidationError):
        cart_service.set_item("u1", pid, "lots")
    with pytest.raises(ProductNotFound):
        cart_service.set_item("u1", "missing", 1)


def test_remove_and_clear(cart_service, make_product):
    a = make_product(name="A")
    b = make_product(name="B")
    with pytest.raises(CartNotFound):
        cart_service.remove_item("u1", a)

    cart_service.set_item("u1", a, 1)
    cart_service.set_item("u1", b, 1)
    cart_service.remove_item("u1", a)
    with pytest.raises(CartItemNotFound):
        cart_service.remove_item("u1", a)

    assert cart_service.clear_cart("u1") == 1
    assert cart_service.get_cart("u1")["items"] == []
    with pytest.raises(CartNotFound):
        cart_service.clear_cart("nobody")


def test_guest_cart_is_separate(cart_service, make_product):
    pid = make_product()
    cart_service.set_item("guest_abc", pid, 2, guest=True)

    assert cart_service.get_cart("guest_abc", guest=True)["item_count"] == 2
    assert cart_service.get_cart("guest_abc")["item_count"] == 0
