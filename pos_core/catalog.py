import logging
from dataclasses import dataclass, replace, fields
from typing import Tuple
from .domain import Product, Promo, PROMO_TYPE_LIST, PROMO_COMBO
from .ftypes import Maybe, Either

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromoCatalog:
    """Набор промо в порядке каталога; порядок определяет приоритет combo"""

    promos: Tuple[Promo, ...] = ()

    @staticmethod
    def from_promos(promos) -> "PromoCatalog":
        return PromoCatalog(promos=tuple(sorted(promos, key=lambda p: p.order)))

    def promo_for_type(self, type_id: str) -> Maybe[Promo]:
        """Первая type_list акция для типа (если их несколько, берётся первая)"""
        found = next(
            (p for p in self.promos if p.mode == PROMO_TYPE_LIST and p.type_id == type_id),
            None,
        )
        return Maybe(found)

    def combo_promos(self) -> Tuple[Promo, ...]:
        return tuple(
            p for p in self.promos if p.mode == PROMO_COMBO and p.combo_product_ids
        )


# ============ Товары ============


def enabled_products(products: Tuple[Product, ...]) -> Tuple[Product, ...]:
    return tuple(sorted((p for p in products if p.enabled), key=lambda p: p.order))


def find_product(products: Tuple[Product, ...], product_id: str) -> Maybe[Product]:
    return Maybe(next((p for p in products if p.id == product_id), None))


def add_product(products: Tuple[Product, ...], product: Product) -> Tuple[Product, ...]:
    """Добавляет товар в конец списка (order = max + 1)"""
    next_order = max((p.order for p in products), default=-1) + 1
    return products + (replace(product, order=next_order),)


def update_product(
    products: Tuple[Product, ...], product_id: str, updates: dict, locked: bool
) -> Either[dict, Tuple[Product, ...]]:
    if locked:
        logger.warning("Blocked: cannot update product %s in locked event", product_id)
        return Either.refuse("Event is locked")

    found = find_product(products, product_id).to_either(f"Product '{product_id}' not found")
    allowed = {f.name for f in fields(Product)} - {"id"}
    unknown = sorted(set(updates) - allowed)
    if found.is_right and unknown:
        return Either.refuse(f"Unknown product fields: {', '.join(unknown)}")

    return found.map(
        lambda _: tuple(replace(p, **updates) if p.id == product_id else p for p in products)
    )


def delete_product(products: Tuple[Product, ...], product_id: str) -> Tuple[Product, ...]:
    return tuple(p for p in products if p.id != product_id)


# ============ Промо ============


def add_promo(catalog: PromoCatalog, promo: Promo) -> PromoCatalog:
    next_order = max((p.order for p in catalog.promos), default=-1) + 1
    return PromoCatalog(promos=catalog.promos + (replace(promo, order=next_order),))


def delete_promo(catalog: PromoCatalog, promo_id: str) -> PromoCatalog:
    return PromoCatalog(promos=tuple(p for p in catalog.promos if p.id != promo_id))


def reorder_promos(catalog: PromoCatalog, from_index: int, to_index: int) -> PromoCatalog:
    """Перемещает промо и перенумеровывает order (меняет приоритет combo)"""
    items = list(catalog.promos)
    if not (0 <= from_index < len(items)) or not (0 <= to_index < len(items)):
        return catalog
    moved = items.pop(from_index)
    items.insert(to_index, moved)
    return PromoCatalog(promos=tuple(replace(p, order=i) for i, p in enumerate(items)))
