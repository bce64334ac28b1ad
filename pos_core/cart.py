from dataclasses import replace
from typing import Optional
from .domain import Cart, CartLine, Product


# ============ Cart operations (чистые функции) ============
# Любое изменение состава корзины сбрасывает ручной итог.


def add_to_cart(cart: Cart, product: Product, qty: int = 1) -> Cart:
    """Возвращает новый Cart с добавленным товаром (иммутабельно)"""
    if qty <= 0:
        return cart

    existing = next((line for line in cart.lines if line.product.id == product.id), None)

    if existing:
        updated_lines = tuple(
            replace(line, quantity=line.quantity + qty) if line.product.id == product.id else line
            for line in cart.lines
        )
    else:
        updated_lines = cart.lines + (CartLine(product=product, quantity=qty),)

    return Cart(lines=updated_lines, override_total=None)


def remove_from_cart(cart: Cart, product_id: str) -> Cart:
    """Уменьшает количество на 1; строка с количеством 1 удаляется"""
    existing = next((line for line in cart.lines if line.product.id == product_id), None)
    if existing is None:
        return cart

    if existing.quantity == 1:
        updated_lines = tuple(filter(lambda line: line.product.id != product_id, cart.lines))
    else:
        updated_lines = tuple(
            replace(line, quantity=line.quantity - 1) if line.product.id == product_id else line
            for line in cart.lines
        )

    return Cart(lines=updated_lines, override_total=None)


def set_line_price(cart: Cart, product_id: str, price: float) -> Cart:
    return replace(
        cart,
        lines=tuple(
            replace(line, override_price=price) if line.product.id == product_id else line
            for line in cart.lines
        ),
    )


def clear_line_price(cart: Cart, product_id: str) -> Cart:
    return replace(
        cart,
        lines=tuple(
            replace(line, override_price=None) if line.product.id == product_id else line
            for line in cart.lines
        ),
    )


def entered_line_price(line: CartLine, entered: float) -> Optional[float]:
    """Ручная цена по введённому значению; цена каталога снимает ручную цену (None)"""
    return None if entered == line.product.price else entered


def set_total_override(cart: Cart, total: Optional[float]) -> Cart:
    return replace(cart, override_total=total)


def clear_total_override(cart: Cart) -> Cart:
    return replace(cart, override_total=None)


def clear_cart(cart: Cart) -> Cart:
    return Cart()


def item_quantity(cart: Cart, product_id: str) -> int:
    return sum(line.quantity for line in cart.lines if line.product.id == product_id)
