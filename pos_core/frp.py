from dataclasses import dataclass
from functools import reduce
from typing import Callable, Tuple
from .cart import (
    add_to_cart,
    clear_cart,
    clear_line_price,
    remove_from_cart,
    set_line_price,
    set_total_override,
)
from .domain import Cart, Event
from .history import delete_transaction, record_transaction
import uuid
from datetime import datetime


@dataclass(frozen=True)
class EventBus:
    """
    Иммутабельная шина событий кассы
    Подписчики - чистые функции: (Event, State) -> State
    """

    subscribers: Tuple[Tuple[str, Callable], ...] = ()

    def subscribe(
        self, event_name: str, handler: Callable[[Event, dict], dict]
    ) -> "EventBus":
        """Возвращает новую шину с добавленным подписчиком"""
        return EventBus(subscribers=self.subscribers + ((event_name, handler),))

    def publish(self, event: Event, state: dict) -> dict:
        """Применяет всех подписчиков события последовательно, возвращает новое состояние"""
        matching_handlers = tuple(
            handler for name, handler in self.subscribers if name == event.name
        )
        return reduce(lambda current, handler: handler(event, current), matching_handlers, state)


# ============ Конструкторы событий ============


def create_event(name: str, payload: dict) -> Event:
    """Создаёт событие с автоматической меткой времени"""
    return Event(
        id=str(uuid.uuid4()),
        ts=datetime.now().isoformat(),
        name=name,
        payload=payload,
    )


# ============ Обработчики ============


def _with_cart(state: dict, cart: Cart, event: Event) -> dict:
    return {**state, "cart": cart, "last_event": event.name, "last_error": None}


def handle_add_to_cart(event: Event, state: dict) -> dict:
    cart = add_to_cart(state["cart"], event.payload["product"], event.payload.get("qty", 1))
    return _with_cart(state, cart, event)


def handle_remove_from_cart(event: Event, state: dict) -> dict:
    return _with_cart(state, remove_from_cart(state["cart"], event.payload["product_id"]), event)


def handle_set_line_price(event: Event, state: dict) -> dict:
    """price=None снимает ручную цену строки"""
    product_id = event.payload["product_id"]
    price = event.payload.get("price")
    cart = (
        clear_line_price(state["cart"], product_id)
        if price is None
        else set_line_price(state["cart"], product_id, price)
    )
    return _with_cart(state, cart, event)


def handle_set_total_override(event: Event, state: dict) -> dict:
    return _with_cart(state, set_total_override(state["cart"], event.payload.get("total")), event)


def handle_clear_cart(event: Event, state: dict) -> dict:
    return _with_cart(state, clear_cart(state["cart"]), event)


def handle_checkout_completed(event: Event, state: dict) -> dict:
    """Записывает транзакцию в историю и очищает корзину"""
    transactions = record_transaction(state["transactions"], event.payload["transaction"])
    return {
        **state,
        "cart": clear_cart(state["cart"]),
        "transactions": transactions,
        "last_event": event.name,
        "last_error": None,
    }


def handle_transaction_deleted(event: Event, state: dict) -> dict:
    """Отказ (заблокированное мероприятие) сохраняется в last_error"""
    result = delete_transaction(
        state["transactions"], event.payload["transaction_id"], event.payload.get("locked", False)
    )
    return result.fold(
        lambda error: {**state, "last_event": event.name, "last_error": error["error"]},
        lambda transactions: {
            **state,
            "transactions": transactions,
            "last_event": event.name,
            "last_error": None,
        },
    )


# ============ Вспомогательные функции ============


def create_register_event_bus() -> EventBus:
    bus = EventBus()
    bus = bus.subscribe("ADD_TO_CART", handle_add_to_cart)
    bus = bus.subscribe("REMOVE_FROM_CART", handle_remove_from_cart)
    bus = bus.subscribe("SET_LINE_PRICE", handle_set_line_price)
    bus = bus.subscribe("SET_TOTAL_OVERRIDE", handle_set_total_override)
    bus = bus.subscribe("CLEAR_CART", handle_clear_cart)
    bus = bus.subscribe("CHECKOUT_COMPLETED", handle_checkout_completed)
    bus = bus.subscribe("TRANSACTION_DELETED", handle_transaction_deleted)
    return bus


def initial_state(transactions: Tuple = ()) -> dict:
    return {
        "cart": Cart(),
        "transactions": tuple(transactions),
        "last_event": None,
        "last_error": None,
    }


def apply_events(bus: EventBus, events: Tuple[Event, ...], state: dict) -> dict:
    """Чистая функция: (events, initial_state) -> final_state"""
    return reduce(lambda s, e: bus.publish(e, s), events, state)
