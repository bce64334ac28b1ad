import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from pos_core.domain import ExchangeRates, Product, ProductType, Transaction, TransactionItem
from Totals_Service.report import (
    currency_summaries,
    main_currency_total,
    product_summaries,
    sales_by_hour,
    sales_summary,
    type_subtotals,
)

RATES = ExchangeRates(rates={"USD": 1.0, "EUR": 0.8, "GBP": 0.5})
TYPES = (ProductType(id="apps", name="Apps"), ProductType(id="stuff", name="Stuff"))


def item(pid, type_id, price, qty):
    return TransactionItem(
        product=Product(id=pid, name=pid.upper(), price=price, type_id=type_id), quantity=qty
    )


@pytest.fixture
def transactions():
    return (
        Transaction(
            id="t1", items=(item("a1", "apps", 25.0, 2),), subtotal=60.0, discount=10.0,
            total=50.0, currency="EUR", payment_method="card",
            timestamp="2025-06-22T10:15:00", applied_promotions=("Apps Promo",),
        ),
        Transaction(
            id="t2", items=(item("s1", "stuff", 10.0, 1),), subtotal=10.0, discount=0.0,
            total=10.0, currency="GBP", payment_method="cash",
            timestamp="2025-06-22T11:30:00",
        ),
        Transaction(
            id="t3", items=(item("a1", "apps", 30.0, 1),), subtotal=30.0, discount=0.0,
            total=30.0, currency="EUR", payment_method="card",
            timestamp="2025-06-22T11:45:00", override_total=30.0,
        ),
    )


def test_main_currency_total(transactions):
    # 10 GBP = 16 EUR
    assert main_currency_total(transactions, RATES, "EUR") == pytest.approx(96.0)


def test_currency_summaries(transactions):
    summary = currency_summaries(transactions)

    assert summary["EUR"]["card"] == {"total": 80.0, "count": 2}
    assert summary["GBP"]["cash"] == {"total": 10.0, "count": 1}


def test_product_summaries_use_effective_prices(transactions):
    by_id = {s["product_id"]: s for s in product_summaries(transactions)}

    assert by_id["a1"]["total_quantity"] == 3
    assert by_id["a1"]["by_currency_and_method"]["EUR"]["card"] == {"quantity": 3, "total": 80.0}
    assert by_id["s1"]["total_quantity"] == 1


def test_type_subtotals_in_main_currency(transactions):
    subtotals = type_subtotals(transactions, TYPES, RATES, "EUR")

    assert subtotals["Apps"] == pytest.approx(80.0)
    assert subtotals["Stuff"] == pytest.approx(16.0)


def test_sales_summary(transactions):
    summary = sales_summary(transactions)

    assert summary["transaction_count"] == 3
    assert summary["items_sold"] == 4
    assert summary["with_promotions"] == 1
    assert summary["with_overrides"] == 1
    assert summary["promotion_usage"] == {"Apps Promo": 1}
    assert summary["by_payment_method"] == {"card": 2, "cash": 1}


def test_sales_by_hour(transactions):
    assert sales_by_hour(transactions) == {10: 1, 11: 2}


def test_reports_on_empty_history():
    assert main_currency_total((), RATES, "EUR") == 0.0
    assert currency_summaries(()) == {}
    assert product_summaries(()) == []
