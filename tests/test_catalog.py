import pytest

from storecore.services.catalog_service import CatalogService
from storecore.services.errors import CategoryNotFound, DuplicateCategory, ProductNotFound, ValidationError


@pytest.fixture
def catalog(session_factory):
    return CatalogService(session_factory)


def _product(catalog, name, price, **extra):
    data = {"name_en": name, "name_ar": name, "sale_price": price, "weight": "1", "stock": 5}
    data.update(extra)
    return catalog.create_product(data)


def test_create_and_filter_products(catalog):
    knives = catalog.create_category({"name_en": "Knives", "name_ar": "سكاكين"})
    _product(catalog, "Chef Knife", "40", category_ids=[knives["id"]])
    _product(catalog, "Paring Knife", "15", category_ids=knives["id"])
    _product(catalog, "Apron", "25")

    by_category = catalog.list_products(category_id=knives["id"])
    assert by_category["total"] == 2

    cheap = catalog.list_products(max_price="20")
    assert [p["name_en"] for p in cheap["items"]] == ["Paring Knife"]

    found = catalog.list_products(search="apr")
    assert found["total"] == 1

    ordered = catalog.list_products(sort_by="sale_price", order="asc")
    assert [p["sale_price"] for p in ordered["items"]] == [15.0, 25.0, 40.0]

    paged = catalog.list_products(page=2, page_size=2)
    assert paged["total"] == 3
    assert len(paged["items"]) == 1


def test_product_validation(catalog):
    with pytest.raises(ValidationError):
        catalog.create_product({"name_en": "", "sale_price": "1", "weight": "1"})
    with pytest.raises(ValidationError):
        catalog.create_product({"name_en": "X", "sale_price": "-1", "weight": "1"})
    with pytest.raises(ValidationError):
        catalog.create_product({"name_en": "X", "sale_price": "1", "weight": "1", "category_ids": ["nope"]})


def test_update_overwrites_stock(catalog):
    product = _product(catalog, "Pot", "30")
    updated = catalog.update_product(product["id"], {"stock": 12, "description_en": "Steel pot"})
    assert updated["stock"] == 12
    assert updated["description_en"] == "Steel pot"


def test_soft_delete_hides_product(catalog):
    product = _product(catalog, "Pan", "30")
    catalog.delete_product(product["id"])

    with pytest.raises(ProductNotFound):
        catalog.get_product(product["id"])
    assert catalog.list_products()["total"] == 0


def test_category_lifecycle(catalog):
    cat = catalog.create_category({"name_en": "Pans", "name_ar": "مقالي"})
    with pytest.raises(DuplicateCategory):
        catalog.create_category({"name_en": "Pans", "name_ar": "x"})
    with pytest.raises(ValidationError):
        catalog.create_category({"name_en": "Bowls"})

    product = _product(catalog, "Wok", "50", category_ids=[cat["id"]])
    detail = catalog.get_category(cat["id"])
    assert [p["id"] for p in detail["products"]] == [product["id"]]

    renamed = catalog.update_category(cat["id"], {"name_en": "Woks"})
    assert renamed["name_en"] == "Woks"

    catalog.delete_category(cat["id"])
    with pytest.raises(CategoryNotFound):
        catalog.get_category(cat["id"])
    assert catalog.get_product(product["id"])["categories"] == []
