import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from pos_core.catalog import (
    PromoCatalog,
    add_product,
    add_promo,
    delete_product,
    delete_promo,
    enabled_products,
    find_product,
    reorder_promos,
    update_product,
)
from pos_core.domain import Product, Promo
from pos_core.storage import load_catalog

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

TIERED = Promo(id="t", name="Tiered", mode="type_list", order=2, type_id="apps", max_quantity=2, prices={2: 5.0})
COMBO_A = Promo(id="ca", name="Combo A", mode="combo", order=0, combo_product_ids=("p1", "p2"), combo_price=3.0)
COMBO_B = Promo(id="cb", name="Combo B", mode="combo", order=1, combo_product_ids=("p1",), combo_price=1.0)
EMPTY_COMBO = Promo(id="ce", name="Empty", mode="combo", order=3)


@pytest.fixture
def products():
    return (
        Product(id="p1", name="One", price=1.0, type_id="apps", order=1),
        Product(id="p2", name="Two", price=2.0, type_id="apps", order=0),
        Product(id="p3", name="Off", price=3.0, type_id="apps", order=2, enabled=False),
    )


def test_catalog_queries_follow_order():
    catalog = PromoCatalog.from_promos((TIERED, COMBO_B, EMPTY_COMBO, COMBO_A))

    assert [p.id for p in catalog.combo_promos()] == ["ca", "cb"]
    assert catalog.promo_for_type("apps").get_or_else(None) == TIERED
    assert catalog.promo_for_type("stuff").is_none()


def test_reorder_promos_changes_combo_precedence():
    catalog = PromoCatalog.from_promos((COMBO_A, COMBO_B))
    reordered = reorder_promos(catalog, 1, 0)

    assert [p.id for p in reordered.combo_promos()] == ["cb", "ca"]
    assert [p.order for p in reordered.promos] == [0, 1]
    assert reorder_promos(catalog, 5, 0) is catalog


def test_add_and_delete_promo():
    catalog = add_promo(PromoCatalog.from_promos((COMBO_A,)), TIERED)

    assert catalog.promos[-1].order == 1
    assert [p.id for p in delete_promo(catalog, "ca").promos] == ["t"]


def test_enabled_products_sorted(products):
    assert [p.id for p in enabled_products(products)] == ["p2", "p1"]


def test_add_and_delete_product(products):
    added = add_product(products, Product(id="p4", name="New", price=4.0, type_id="apps"))

    assert find_product(added, "p4").get_or_else(None).order == 3
    assert find_product(delete_product(added, "p4"), "p4").is_none()


def test_update_product_lock_gate(products):
    assert update_product(products, "p1", {"price": 9.0}, locked=True).is_left

    result = update_product(products, "p1", {"price": 9.0}, locked=False)
    assert find_product(result.get_or_else(()), "p1").get_or_else(None).price == 9.0


def test_update_product_rejects_bad_input(products):
    assert update_product(products, "nope", {"price": 1.0}, locked=False).is_left
    assert update_product(products, "p1", {"id": "x"}, locked=False).is_left


def test_load_seed_catalog():
    """Проверка загрузки каталога из data/catalog.json"""
    types, products, catalog = load_catalog(os.path.join(DATA_DIR, "catalog.json"))

    assert len(types) > 0
    assert len(products) > 0
    apps_promo = catalog.promo_for_type("type_1").get_or_else(None)
    assert apps_promo.prices[7] == 150.0
    assert all(isinstance(q, int) for q in apps_promo.prices)
    assert catalog.combo_promos()[0].combo_product_ids == ("p5", "p6")
