"""
Материализация транзакции при оформлении.

Каждой строке назначается эффективная цена за единицу так, чтобы сумма
effective_price * quantity по всем строкам равнялась total транзакции.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from .catalog import PromoCatalog
from .currency import convert, effective_rate
from .domain import (
    CartLine,
    CurrencyParams,
    PricingResult,
    ProductType,
    SettlementParams,
    Transaction,
    TransactionItem,
)
from .ftypes import Either
from .pricing import compute_totals, line_total

logger = logging.getLogger(__name__)

RESIDUAL_EPSILON = 1e-9


def allocate(
    amounts: List[float], indices: Iterable[int], reduction: float, weights: Optional[List[float]] = None
) -> List[float]:
    """
    Вычитает reduction из amounts[indices] пропорционально весам (по умолчанию веса = сами суммы).
    Если сумма весов группы равна нулю, строки группы не меняются.
    """
    weights = amounts if weights is None else weights
    group = tuple(indices)
    group_weight = sum(weights[i] for i in group)
    if group_weight == 0:
        return list(amounts)

    shares = {i: weights[i] / group_weight for i in group}
    return [a - reduction * shares[i] if i in shares else a for i, a in enumerate(amounts)]


def discount_group(
    cart: Tuple[CartLine, ...], type_ids: Iterable[str], inside: bool = True
) -> Tuple[int, ...]:
    """Промо-строки типов type_ids (при inside=False: промо-строки всех остальных типов)"""
    ids = set(type_ids)
    return tuple(
        i
        for i, line in enumerate(cart)
        if line.product.promo_eligible and (line.product.type_id in ids) == inside
    )


def allocate_promo_discount(
    naturals: List[float],
    cart: Tuple[CartLine, ...],
    result: PricingResult,
    discount_type_ids: Tuple[str, ...] = (),
) -> List[float]:
    """
    Скидка каждого выделенного типа ложится на промо-строки этого типа.
    Скидка остальных типов (например, combo на другие товары) делится
    между промо-строками вне выделенных типов.
    Без discount_type_ids выделенными считаются все типы со скидкой.
    """
    designated = discount_type_ids or tuple(result.type_discounts)
    allocated = list(naturals)
    for type_id in designated:
        amount = result.type_discounts.get(type_id, 0.0) * result.conversion_rate
        allocated = allocate(allocated, discount_group(cart, (type_id,)), amount, naturals)

    rest = sum(
        amount for type_id, amount in result.type_discounts.items() if type_id not in designated
    )
    if rest:
        allocated = allocate(
            allocated,
            discount_group(cart, designated, inside=False),
            rest * result.conversion_rate,
            naturals,
        )
    return allocated


def allocate_line_totals(
    cart: Tuple[CartLine, ...],
    result: PricingResult,
    discount_type_ids: Tuple[str, ...] = (),
) -> List[float]:
    """Итог каждой строки (в валюте показа) после распределения скидки"""
    naturals = [line_total(line) * result.conversion_rate for line in cart]
    everyone = range(len(cart))
    natural_sum = sum(naturals)

    if result.override_total is not None:
        allocated = allocate(naturals, everyone, natural_sum - result.total)
    elif result.applied_promotions:
        allocated = allocate_promo_discount(naturals, cart, result, discount_type_ids)
    else:
        allocated = naturals

    # остаток: округление вверх, пустая группа скидки, нулевые цены
    residual = sum(allocated) - result.total
    if abs(residual) > RESIDUAL_EPSILON:
        weights = allocated if sum(allocated) != 0 else [float(line.quantity) for line in cart]
        allocated = allocate(allocated, everyone, residual, weights)

    return allocated


def materialize_transaction(
    cart: Tuple[CartLine, ...],
    result: PricingResult,
    payment_method: str,
    settlement: Optional[SettlementParams] = None,
    discount_type_ids: Tuple[str, ...] = (),
    email: Optional[str] = None,
    timestamp: Optional[str] = None,
    transaction_id: Optional[str] = None,
) -> Transaction:
    """
    Превращает корзину и итоги в неизменяемую транзакцию.

    Если метод оплаты рассчитывается в другой валюте (карта -> EUR),
    все суммы конвертируются, а исходные значения сохраняются в original_*.
    Итоги без валюты (result.currency == "") не пересчитываются.
    Пустая корзина -> ValueError: строк, на которые лёг бы total, нет
    (complete_checkout отказывает раньше через Either).
    """
    if not cart:
        raise ValueError("Cannot materialize a transaction from an empty cart")

    line_totals = allocate_line_totals(cart, result, discount_type_ids)

    target = settlement.currencies.get(payment_method) if settlement is not None else None
    converting = target is not None and bool(result.currency) and target != result.currency

    if converting:
        factor = convert(
            1.0,
            effective_rate(settlement.rates, result.currency),
            effective_rate(settlement.rates, target),
        )
    else:
        factor = 1.0

    items = tuple(
        TransactionItem(
            product=replace(line.product, price=(amount / line.quantity) * factor),
            quantity=line.quantity,
        )
        for line, amount in zip(cart, line_totals)
    )

    override_total = (
        result.override_total * result.conversion_rate * factor
        if result.override_total is not None
        else None
    )
    cleaned_email = email.strip() if email else ""

    return Transaction(
        id=transaction_id or str(uuid.uuid4()),
        items=items,
        subtotal=result.subtotal * factor,
        discount=result.discount * factor,
        total=result.total * factor,
        currency=target if converting else result.currency,
        payment_method=payment_method,
        timestamp=timestamp or datetime.now().isoformat(),
        applied_promotions=result.applied_promotions,
        email=cleaned_email or None,
        override_total=override_total,
        original_currency=result.currency if converting else None,
        original_total=result.total if converting else None,
        original_subtotal=result.subtotal if converting else None,
    )


def complete_checkout(
    cart: Tuple[CartLine, ...],
    product_types: Tuple[ProductType, ...],
    catalog: PromoCatalog,
    payment_method: str,
    locked: bool,
    override_total: Optional[float] = None,
    currency: Optional[CurrencyParams] = None,
    settlement: Optional[SettlementParams] = None,
    discount_type_ids: Tuple[str, ...] = (),
    email: Optional[str] = None,
) -> Either[dict, Transaction]:
    """
    Оформляет продажу -> Either[error, Transaction]
    Left если мероприятие заблокировано или корзина пуста
    """
    if locked:
        logger.warning("Cannot complete transaction: event is locked")
        return Either.refuse("This event is locked. You cannot register new transactions.")

    if not cart:
        return Either.refuse("Cart is empty")

    result = compute_totals(cart, product_types, catalog, override_total, currency)
    transaction = materialize_transaction(
        cart, result, payment_method, settlement, discount_type_ids, email
    )
    logger.info(
        "Transaction %s: %.2f %s (%s)",
        transaction.id,
        transaction.total,
        transaction.currency,
        payment_method,
    )
    return Either.right(transaction)
