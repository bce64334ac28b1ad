import sys
import os
import logging
import streamlit as st
from datetime import date

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pos_core.cart import entered_line_price
from pos_core.config import config
from pos_core.currency import format_amount, with_custom_rate
from pos_core.domain import CURRENCIES, PAYMENT_METHODS
from pos_core.frp import create_register_event_bus, create_event, initial_state
from pos_core.history import update_transaction
from pos_core.service import RegisterService
from pos_core.storage import load_catalog, load_rates, load_transactions, save_transactions
from Totals_Service.report import (
    currency_summaries,
    main_currency_total,
    product_summaries,
    sales_summary,
    type_subtotals,
)

logging.basicConfig(
    level=config.log_level, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============ Кэширование данных ============
@st.cache_data
def get_catalog():
    return load_catalog(config.catalog_path)


@st.cache_resource
def get_event_bus():
    return create_register_event_bus()


# ============ Инициализация ============
st.set_page_config(
    page_title="Event Register",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

types, products, catalog = get_catalog()
bus = get_event_bus()

if "rates" not in st.session_state:
    st.session_state.rates = load_rates(config.rates_path)

if "register_state" not in st.session_state:
    st.session_state.register_state = initial_state(load_transactions(config.history_path))

if "display_currency" not in st.session_state:
    st.session_state.display_currency = config.main_currency

if "locked" not in st.session_state:
    st.session_state.locked = False

service = RegisterService(types, products, catalog, st.session_state.rates, config)


def publish(name: str, payload: dict) -> None:
    st.session_state.register_state = bus.publish(
        create_event(name, payload), st.session_state.register_state
    )


def persist_history() -> None:
    save_transactions(config.history_path, st.session_state.register_state["transactions"])


# ============ SIDEBAR - Навигация ============
with st.sidebar:
    st.header("📂 Навигация")
    page = st.radio(
        "Выберите раздел:",
        ["🧾 Касса", "📜 История", "📊 Итоги", "⚙️ Настройки"],
        label_visibility="collapsed",
    )

    st.divider()
    st.session_state.display_currency = st.selectbox(
        "💱 Валюта",
        CURRENCIES,
        index=CURRENCIES.index(st.session_state.display_currency),
    )
    if st.session_state.locked:
        st.warning("🔒 Мероприятие заблокировано")


# ============ PAGE: КАССА ============
if page == "🧾 Касса":
    st.header("🧾 Касса")

    cart = st.session_state.register_state["cart"]
    currency = st.session_state.display_currency
    col_products, col_cart = st.columns([3, 2])

    with col_products:
        for ptype, type_products in service.products_by_type():
            st.subheader(ptype.name)
            cols = st.columns(3)
            for idx, p in enumerate(type_products):
                with cols[idx % 3]:
                    label = f"{p.name}\n{format_amount(p.price, config.main_currency)}"
                    if st.button(label, key=f"add_{p.id}", use_container_width=True):
                        publish("ADD_TO_CART", {"product": p, "qty": 1})
                        st.rerun()

    with col_cart:
        st.subheader("🛒 Корзина")

        if not cart.lines:
            st.info("Корзина пуста")
        else:
            for line in cart.lines:
                cols = st.columns([4, 1, 3, 1])
                with cols[0]:
                    st.write(f"**{line.product.name}**")
                with cols[1]:
                    st.write(f"× {line.quantity}")
                with cols[2]:
                    price = st.number_input(
                        "Цена",
                        min_value=0.0,
                        value=float(
                            line.override_price
                            if line.override_price is not None
                            else line.product.price
                        ),
                        key=f"price_{line.product.id}",
                        label_visibility="collapsed",
                    )
                    override = entered_line_price(line, price)
                    if override != line.override_price:
                        publish("SET_LINE_PRICE", {"product_id": line.product.id, "price": override})
                        st.rerun()
                with cols[3]:
                    if st.button("➖", key=f"remove_{line.product.id}"):
                        publish("REMOVE_FROM_CART", {"product_id": line.product.id})
                        st.rerun()

            totals = service.totals(cart, currency)

            st.divider()
            st.write(f"Подытог: {format_amount(totals.subtotal, currency)}")
            if totals.discount:
                st.write(f"Скидка: −{format_amount(totals.discount, currency)}")
            for name in totals.applied_promotions:
                st.caption(f"🏷️ {name}")
            st.markdown(f"### 💰 Итого: **{format_amount(totals.total, currency)}**")

            with st.expander("✏️ Ручной итог"):
                manual = st.number_input("Итог", min_value=0.0, value=0.0, key="override_total")
                c1, c2 = st.columns(2)
                with c1:
                    if st.button("Применить", key="apply_override"):
                        publish("SET_TOTAL_OVERRIDE", {"total": manual})
                        st.rerun()
                with c2:
                    if st.button("Сбросить", key="clear_override"):
                        publish("SET_TOTAL_OVERRIDE", {"total": None})
                        st.rerun()

            email = st.text_input("📧 Email (необязательно)", key="checkout_email")
            method_cols = st.columns(len(PAYMENT_METHODS))
            for col, method in zip(method_cols, PAYMENT_METHODS):
                with col:
                    if st.button(method.upper(), key=f"pay_{method}", type="primary"):
                        result = service.checkout(
                            cart, currency, method, st.session_state.locked, email
                        )
                        if result.is_right:
                            transaction = result.get_or_else(None)
                            publish("CHECKOUT_COMPLETED", {"transaction": transaction})
                            persist_history()
                            st.success(
                                f"✅ Оплачено: {format_amount(transaction.total, transaction.currency)}"
                            )
                        else:
                            st.error(f"❌ {result.value['error']}")

            if st.button("🗑️ Очистить корзину", key="clear_cart"):
                publish("CLEAR_CART", {})
                st.rerun()


# ============ PAGE: ИСТОРИЯ ============
elif page == "📜 История":
    st.header("📜 История транзакций")

    transactions = st.session_state.register_state["transactions"]
    if not transactions:
        st.info("Транзакций пока нет")

    for t in transactions[:50]:
        with st.expander(
            f"{t.timestamp[:16]} · {format_amount(t.total, t.currency)} · {t.payment_method}"
        ):
            for item in t.items:
                st.write(
                    f"{item.product.name} × {item.quantity}: "
                    f"{format_amount(item.product.price * item.quantity, t.currency)}"
                )
            if t.applied_promotions:
                st.caption("🏷️ " + ", ".join(t.applied_promotions))
            if t.original_currency:
                st.caption(
                    f"Исходно: {format_amount(t.original_total, t.original_currency)}"
                )

            new_email = st.text_input("Email", value=t.email or "", key=f"email_{t.id}")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("💾 Сохранить", key=f"save_{t.id}"):
                    result = update_transaction(
                        transactions, t.id, {"email": new_email or None}, st.session_state.locked
                    )
                    if result.is_right:
                        st.session_state.register_state = {
                            **st.session_state.register_state,
                            "transactions": result.get_or_else(transactions),
                        }
                        persist_history()
                        st.rerun()
                    else:
                        st.error(f"❌ {result.value['error']}")
            with c2:
                if st.button("🗑️ Удалить", key=f"delete_{t.id}"):
                    publish(
                        "TRANSACTION_DELETED",
                        {"transaction_id": t.id, "locked": st.session_state.locked},
                    )
                    error = st.session_state.register_state["last_error"]
                    if error:
                        st.error(f"❌ {error}")
                    else:
                        persist_history()
                        st.rerun()


# ============ PAGE: ИТОГИ ============
elif page == "📊 Итоги":
    st.header("📊 Итоги мероприятия")

    transactions = st.session_state.register_state["transactions"]
    rates = st.session_state.rates
    main = config.main_currency

    summary = sales_summary(transactions)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("💰 Всего", format_amount(main_currency_total(transactions, rates, main), main))
    with col2:
        st.metric("🧾 Транзакций", summary["transaction_count"])
    with col3:
        st.metric("📦 Продано", summary["items_sold"])

    today = date.today().isoformat()
    st.caption(f"Сегодня: {len([t for t in transactions if t.timestamp.startswith(today)])}")

    st.divider()
    st.subheader("💱 По валютам")
    for cur, methods in currency_summaries(transactions).items():
        for method, data in methods.items():
            st.write(f"**{cur}** · {method}: {format_amount(data['total'], cur)} ({data['count']})")

    st.subheader("🗂️ По типам")
    for name, total in type_subtotals(transactions, types, rates, main).items():
        st.write(f"**{name}**: {format_amount(total, main)}")

    st.subheader("📦 По товарам")
    for s in product_summaries(transactions):
        st.write(f"**{s['name']}**: {s['total_quantity']} шт")


# ============ PAGE: НАСТРОЙКИ ============
elif page == "⚙️ Настройки":
    st.header("⚙️ Настройки")

    st.session_state.locked = st.toggle("🔒 Заблокировать мероприятие", value=st.session_state.locked)

    st.subheader("💱 Ручной курс")
    cur = st.selectbox("Валюта", CURRENCIES, key="custom_rate_currency")
    rate = st.number_input("Курс к USD", min_value=0.0001, value=1.0, key="custom_rate_value")
    if st.button("Сохранить курс"):
        st.session_state.rates = with_custom_rate(st.session_state.rates, cur, rate)
        logger.info("Custom rate %s = %s", cur, rate)
        st.success("✅ Курс сохранён")

    st.subheader("🏷️ Промо-акции")
    for promo in catalog.promos:
        st.write(f"{promo.order}. **{promo.name}** ({promo.mode})")
