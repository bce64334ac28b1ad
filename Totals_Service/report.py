from typing import Tuple, Dict, List
from functools import reduce
from pos_core.currency import convert, effective_rate
from pos_core.domain import ExchangeRates, ProductType, Transaction


def _to_main(amount: float, currency: str, rates: ExchangeRates, main: str) -> float:
    if currency == main:
        return amount
    return convert(amount, effective_rate(rates, currency), effective_rate(rates, main))


# ============ Итоги по валютам ============


def main_currency_total(
    transactions: Tuple[Transaction, ...], rates: ExchangeRates, main: str
) -> float:
    """Сумма всех транзакций, пересчитанная в основную валюту"""
    return reduce(
        lambda acc, t: acc + _to_main(t.total, t.currency, rates, main), transactions, 0.0
    )


def currency_summaries(transactions: Tuple[Transaction, ...]) -> Dict[str, Dict[str, dict]]:
    """
    Итоги по валюте и способу оплаты (иммутабельная агрегация через reduce)
    Возвращает: {currency: {method: {"total": ..., "count": ...}}}
    """

    def accumulate(acc: dict, t: Transaction) -> dict:
        methods = acc.get(t.currency, {})
        current = methods.get(t.payment_method, {"total": 0.0, "count": 0})
        updated = {"total": current["total"] + t.total, "count": current["count"] + 1}
        return {**acc, t.currency: {**methods, t.payment_method: updated}}

    return reduce(accumulate, transactions, {})


# ============ Итоги по товарам ============


def product_summaries(transactions: Tuple[Transaction, ...]) -> List[dict]:
    """
    Проданное количество и выручка по каждому товару (по эффективным ценам)
    Товары с нулевым количеством не попадают в отчёт
    """

    def accumulate(acc: dict, t: Transaction) -> dict:
        def add_item(inner: dict, item) -> dict:
            pid = item.product.id
            summary = inner.get(
                pid,
                {
                    "product_id": pid,
                    "name": item.product.name,
                    "total_quantity": 0,
                    "by_currency_and_method": {},
                },
            )
            by_currency = summary["by_currency_and_method"]
            methods = by_currency.get(t.currency, {})
            cell = methods.get(t.payment_method, {"quantity": 0, "total": 0.0})
            new_cell = {
                "quantity": cell["quantity"] + item.quantity,
                "total": cell["total"] + item.product.price * item.quantity,
            }
            return {
                **inner,
                pid: {
                    **summary,
                    "total_quantity": summary["total_quantity"] + item.quantity,
                    "by_currency_and_method": {
                        **by_currency,
                        t.currency: {**methods, t.payment_method: new_cell},
                    },
                },
            }

        return reduce(add_item, t.items, acc)

    summaries = reduce(accumulate, transactions, {})
    return [s for s in summaries.values() if s["total_quantity"] > 0]


def type_subtotals(
    transactions: Tuple[Transaction, ...],
    types: Tuple[ProductType, ...],
    rates: ExchangeRates,
    main: str,
) -> Dict[str, float]:
    """Выручка по типам товаров в основной валюте: {type_name: total}"""
    names = {t.id: t.name for t in types}

    def accumulate(acc: dict, t: Transaction) -> dict:
        def add_item(inner: dict, item) -> dict:
            name = names.get(item.product.type_id, "Other")
            amount = _to_main(item.product.price * item.quantity, t.currency, rates, main)
            return {**inner, name: inner.get(name, 0.0) + amount}

        return reduce(add_item, t.items, acc)

    return reduce(accumulate, transactions, {})


# ============ Сводка ============


def sales_summary(transactions: Tuple[Transaction, ...]) -> dict:
    """Сводка по продажам"""

    def count_promos(acc: dict, t: Transaction) -> dict:
        return reduce(
            lambda inner, name: {**inner, name: inner.get(name, 0) + 1},
            t.applied_promotions,
            acc,
        )

    def count_methods(acc: dict, t: Transaction) -> dict:
        return {**acc, t.payment_method: acc.get(t.payment_method, 0) + 1}

    return {
        "transaction_count": len(transactions),
        "items_sold": sum(item.quantity for t in transactions for item in t.items),
        "with_promotions": len(tuple(filter(lambda t: t.applied_promotions, transactions))),
        "with_overrides": len(tuple(filter(lambda t: t.override_total is not None, transactions))),
        "promotion_usage": reduce(count_promos, transactions, {}),
        "by_payment_method": reduce(count_methods, transactions, {}),
    }


def sales_by_hour(transactions: Tuple[Transaction, ...]) -> Dict[int, int]:
    """
    Количество продаж по часам дня (иммутабельно)
    """

    def accumulate_hourly(acc: dict, t: Transaction) -> dict:
        try:
            hour = int(t.timestamp[11:13])
            return {**acc, hour: acc.get(hour, 0) + 1}
        except (ValueError, IndexError):
            return acc

    return dict(sorted(reduce(accumulate_hourly, transactions, {}).items()))
