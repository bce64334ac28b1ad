import json
import logging
import os
from dataclasses import asdict
from typing import Tuple
from .catalog import PromoCatalog
from .domain import (
    ExchangeRates,
    Product,
    ProductType,
    Promo,
    Transaction,
    TransactionItem,
)

logger = logging.getLogger(__name__)


def _to_promo(p: dict) -> Promo:
    p2 = dict(p)
    p2["prices"] = {int(q): float(price) for q, price in p2.get("prices", {}).items()}
    p2["combo_product_ids"] = tuple(p2.get("combo_product_ids", ()))
    return Promo(**p2)


def load_catalog(
    path: str,
) -> Tuple[Tuple[ProductType, ...], Tuple[Product, ...], PromoCatalog]:
    """Загружает типы, товары и промо из JSON и возвращает иммутабельные данные"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    types = tuple(
        sorted(map(lambda t: ProductType(**t), data.get("types", [])), key=lambda t: t.order)
    )
    products = tuple(map(lambda p: Product(**p), data.get("products", [])))
    catalog = PromoCatalog.from_promos(map(_to_promo, data.get("promos", [])))
    return types, products, catalog


def load_rates(path: str) -> ExchangeRates:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return ExchangeRates(
        rates={code: float(rate) for code, rate in data.get("rates", {}).items()},
        custom_rates={code: float(rate) for code, rate in data.get("custom_rates", {}).items()},
        last_updated=str(data.get("last_updated", "")),
    )


def save_rates(path: str, rates: ExchangeRates) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(rates), f, ensure_ascii=False, indent=2)


# ============ История транзакций ============


def _to_transaction(t: dict) -> Transaction:
    t2 = dict(t)
    t2["items"] = tuple(
        TransactionItem(product=Product(**item["product"]), quantity=int(item["quantity"]))
        for item in t2.get("items", [])
    )
    t2["applied_promotions"] = tuple(t2.get("applied_promotions", ()))
    return Transaction(**t2)


def load_transactions(path: str) -> Tuple[Transaction, ...]:
    """Отсутствующий файл = пустая история"""
    if not os.path.exists(path):
        return ()

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return tuple(map(_to_transaction, data.get("transactions", [])))


def save_transactions(path: str, transactions: Tuple[Transaction, ...]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(
            {"transactions": [asdict(t) for t in transactions]}, f, ensure_ascii=False, indent=2
        )


def append_transaction(path: str, transaction: Transaction) -> Tuple[Transaction, ...]:
    """Добавляет транзакцию в начало сохранённой истории и возвращает новую историю"""
    updated = (transaction,) + load_transactions(path)
    save_transactions(path, updated)
    logger.info("Transaction %s saved to %s", transaction.id, path)
    return updated
