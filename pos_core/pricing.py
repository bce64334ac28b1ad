"""
Расчёт итогов корзины: натуральная цена -> combo -> type_list промо -> валюта.

Движок никогда не бросает исключений: пропуск в таблице цен или
ненастроенная надбавка просто возвращают натуральную цену для группы.
"""

import logging
from collections import Counter
from functools import reduce
from typing import Dict, Iterable, List, Optional, Tuple
from .catalog import PromoCatalog
from .config import config
from .currency import convert, round_up
from .domain import CartLine, CurrencyParams, PricingResult, ProductType, Promo

logger = logging.getLogger(__name__)

MIN_PROMO_QUANTITY = 2
INCREMENTAL_STEP_UNITS = 5


# ============ Натуральные цены ============


def unit_price(line: CartLine) -> float:
    """Ручная цена строки, если задана, иначе цена товара"""
    return line.override_price if line.override_price is not None else line.product.price


def line_total(line: CartLine) -> float:
    return unit_price(line) * line.quantity


def natural_subtotal(lines: Iterable[CartLine]) -> float:
    return reduce(lambda acc, line: acc + line_total(line), lines, 0.0)


def _natural_of(pairs: Iterable[Tuple[CartLine, int]]) -> float:
    return reduce(lambda acc, pair: acc + unit_price(pair[0]) * pair[1], pairs, 0.0)


# ============ Combo ============


def resolve_combos(
    cart: Tuple[CartLine, ...], catalog: PromoCatalog
) -> Tuple[float, Tuple[str, ...], Dict[str, int]]:
    """
    Применяет combo-акции в порядке каталога.
    Возвращает (выручка combo, применённые названия, {product_id: израсходовано}).
    Более ранняя акция забирает общий товар первой.
    """
    products = {}
    available: Dict[str, int] = {}
    for line in cart:
        products.setdefault(line.product.id, line.product)
        available[line.product.id] = available.get(line.product.id, 0) + line.quantity

    remaining = dict(available)
    revenue = 0.0
    applied: List[str] = []

    for promo in catalog.combo_promos():
        if promo.combo_price is None:
            continue

        required = Counter(promo.combo_product_ids)
        formable = all(
            pid in remaining
            and products[pid].promo_eligible
            and remaining[pid] >= need
            for pid, need in required.items()
        )
        if not formable:
            continue

        count = min(remaining[pid] // need for pid, need in required.items())
        revenue += promo.combo_price * count
        applied.append(promo.name)
        for pid, need in required.items():
            remaining[pid] -= need * count

    consumed = {pid: available[pid] - remaining[pid] for pid in available}
    return revenue, tuple(applied), consumed


def remaining_quantities(
    cart: Tuple[CartLine, ...], consumed: Dict[str, int]
) -> Tuple[Tuple[CartLine, int], ...]:
    """Строки корзины с количеством, оставшимся после combo (нулевые отбрасываются)"""
    left_to_take = dict(consumed)
    result = []
    for line in cart:
        pid = line.product.id
        taken = min(line.quantity, left_to_take.get(pid, 0))
        left_to_take[pid] = left_to_take.get(pid, 0) - taken
        if line.quantity - taken > 0:
            result.append((line, line.quantity - taken))
    return tuple(result)


# ============ Type list ============


def tiered_price(promo: Promo, quantity: int) -> Optional[float]:
    """
    Цена за quantity промо-товаров одного типа или None (= считать натурально).

    quantity <= max_quantity: цена из таблицы
    до 5 сверх max: + extra * incremental_price
    6 и более сверх max: + 5 * incremental_price + остаток * incremental_price_10_plus
    """
    if quantity < MIN_PROMO_QUANTITY:
        return None

    if quantity <= promo.max_quantity:
        price = promo.prices.get(quantity)
        if price is None:
            logger.debug("Promo %s has no price for quantity %d", promo.name, quantity)
        return price

    base = promo.prices.get(promo.max_quantity, 0.0)
    extra = quantity - promo.max_quantity

    if extra <= INCREMENTAL_STEP_UNITS:
        if promo.incremental_price is None:
            logger.debug("Promo %s has no incremental price", promo.name)
            return None
        return base + extra * promo.incremental_price

    if promo.incremental_price is None or promo.incremental_price_10_plus is None:
        logger.debug("Promo %s has no 10+ incremental price", promo.name)
        return None
    return (
        base
        + INCREMENTAL_STEP_UNITS * promo.incremental_price
        + (extra - INCREMENTAL_STEP_UNITS) * promo.incremental_price_10_plus
    )


def price_type_group(
    pairs: Tuple[Tuple[CartLine, int], ...], promo: Optional[Promo]
) -> Tuple[float, Optional[str]]:
    """Цена строк одного типа: (сумма, название применённой акции или None)"""
    eligible = tuple(p for p in pairs if p[0].product.promo_eligible)
    non_eligible = tuple(p for p in pairs if not p[0].product.promo_eligible)

    quantity = sum(qty for _, qty in eligible)
    promo_price = tiered_price(promo, quantity) if promo is not None else None

    if promo_price is None:
        return _natural_of(eligible) + _natural_of(non_eligible), None
    return promo_price + _natural_of(non_eligible), promo.name


# ============ Скидки по типам ============


def _type_of(pair: Tuple[CartLine, int]) -> str:
    return pair[0].product.type_id


def _add_discount(discounts: Dict[str, float], type_id: str, amount: float) -> Dict[str, float]:
    return {**discounts, type_id: discounts.get(type_id, 0.0) + amount}


def consumed_quantities(
    cart: Tuple[CartLine, ...], consumed: Dict[str, int]
) -> Tuple[Tuple[CartLine, int], ...]:
    """Строки корзины с количеством, ушедшим в combo (в том же порядке, что remaining_quantities)"""
    left_to_take = dict(consumed)
    result = []
    for line in cart:
        pid = line.product.id
        taken = min(line.quantity, left_to_take.get(pid, 0))
        left_to_take[pid] = left_to_take.get(pid, 0) - taken
        if taken > 0:
            result.append((line, taken))
    return tuple(result)


def combo_discounts(
    cart: Tuple[CartLine, ...], combo_revenue: float, consumed: Dict[str, int]
) -> Dict[str, float]:
    """Скидка combo по типам, пропорционально натуральной стоимости израсходованных товаров"""
    taken = consumed_quantities(cart, consumed)
    consumed_natural = _natural_of(taken)
    if consumed_natural == 0:
        return {}

    discount = consumed_natural - combo_revenue
    return reduce(
        lambda acc, pair: _add_discount(
            acc, _type_of(pair), discount * unit_price(pair[0]) * pair[1] / consumed_natural
        ),
        taken,
        {},
    )


def promotional_subtotal(
    cart: Tuple[CartLine, ...],
    product_types: Tuple[ProductType, ...],
    catalog: PromoCatalog,
) -> Tuple[float, Tuple[str, ...], Dict[str, float]]:
    """(сумма с промо, применённые акции, {type_id: скидка, заработанная товарами типа})"""
    combo_revenue, applied, consumed = resolve_combos(cart, catalog)
    pairs = remaining_quantities(cart, consumed)
    discounts = combo_discounts(cart, combo_revenue, consumed)

    applied_names = list(applied)
    type_total = 0.0
    for ptype in product_types:
        group = tuple(p for p in pairs if _type_of(p) == ptype.id)
        promo = catalog.promo_for_type(ptype.id).get_or_else(None)
        subtotal, promo_name = price_type_group(group, promo)
        type_total += subtotal
        if promo_name is not None:
            applied_names.append(promo_name)
            discounts = _add_discount(discounts, ptype.id, _natural_of(group) - subtotal)

    # товары удалённых типов считаются по натуральной цене
    known = {t.id for t in product_types}
    orphans = tuple(p for p in pairs if _type_of(p) not in known)

    return combo_revenue + type_total + _natural_of(orphans), tuple(applied_names), discounts


# ============ Итоги ============


def compute_totals(
    cart: Tuple[CartLine, ...],
    product_types: Tuple[ProductType, ...],
    catalog: PromoCatalog,
    override_total: Optional[float] = None,
    currency: Optional[CurrencyParams] = None,
) -> PricingResult:
    """
    Итоги корзины в валюте показа.

    Любая ручная цена строки или ручной итог полностью отключают промо.
    При пересчёте валюты с round_up округляются вверх subtotal и total,
    discount остаётся дробным. Без currency итоги считаются в основной
    валюте из конфигурации.
    """
    natural = natural_subtotal(cart)
    has_line_overrides = any(line.override_price is not None for line in cart)

    if has_line_overrides or override_total is not None:
        promo_total, applied, discounts = natural, (), {}
    else:
        promo_total, applied, discounts = promotional_subtotal(cart, product_types, catalog)

    discount = natural - promo_total
    total = override_total if override_total is not None else promo_total

    if currency is None or currency.display_currency == currency.main_currency:
        return PricingResult(
            subtotal=natural,
            discount=discount,
            total=total,
            applied_promotions=applied,
            has_overrides=has_line_overrides or override_total is not None,
            currency=currency.main_currency if currency is not None else config.main_currency,
            conversion_rate=1.0,
            override_total=override_total,
            type_discounts=discounts,
        )

    subtotal = convert(natural, currency.main_rate, currency.display_rate)
    converted_total = convert(total, currency.main_rate, currency.display_rate)
    if currency.round_up:
        subtotal = round_up(subtotal)
        converted_total = round_up(converted_total)

    return PricingResult(
        subtotal=subtotal,
        discount=convert(discount, currency.main_rate, currency.display_rate),
        total=converted_total,
        applied_promotions=applied,
        has_overrides=has_line_overrides or override_total is not None,
        currency=currency.display_currency,
        conversion_rate=convert(1.0, currency.main_rate, currency.display_rate),
        override_total=override_total,
        type_discounts=discounts,
    )
