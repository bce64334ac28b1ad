import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from pos_core.cart import add_to_cart, set_total_override
from pos_core.config import AppConfig
from pos_core.domain import Cart
from pos_core.service import RegisterService
from pos_core.storage import load_catalog, load_rates

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")


@pytest.fixture
def service():
    types, products, catalog = load_catalog(os.path.join(DATA_DIR, "catalog.json"))
    rates = load_rates(os.path.join(DATA_DIR, "rates.json"))
    settings = AppConfig(
        main_currency="EUR",
        currency_round_up=False,
        card_settlement_currency="EUR",
        discount_type_ids=("type_1",),
    )
    return RegisterService(types, products, catalog, rates, settings)


def product(service, pid):
    return next(p for p in service.products if p.id == pid)


def test_products_grouped_by_enabled_type(service):
    groups = service.products_by_type()

    assert [t.id for t, _ in groups] == ["type_1", "type_2"]
    assert all(p.type_id == t.id for t, items in groups for p in items)


def test_totals_apply_seed_promotions(service):
    cart = Cart()
    for pid in ("p1", "p2", "p5", "p6"):
        cart = add_to_cart(cart, product(service, pid))

    totals = service.totals(cart, "EUR")

    assert totals.subtotal == 80.0
    assert totals.total == 65.0  # 50 (Apps Promo) + 15 (Starter Kit)
    assert totals.applied_promotions == ("Starter Kit", "Apps Promo")


def test_checkout_card_in_other_currency_settles_in_eur(service):
    cart = set_total_override(add_to_cart(Cart(), product(service, "p1"), 2), 50.0)

    result = service.checkout(cart, "GBP", "card", locked=False)

    transaction = result.get_or_else(None)
    assert transaction.currency == "EUR"
    assert transaction.original_currency == "GBP"
    assert transaction.total == pytest.approx(50.0)
    assert sum(i.product.price * i.quantity for i in transaction.items) == pytest.approx(50.0)


def test_checkout_refused_when_locked(service):
    cart = add_to_cart(Cart(), product(service, "p1"))
    assert service.checkout(cart, "EUR", "cash", locked=True).is_left
