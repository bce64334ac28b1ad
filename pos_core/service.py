from typing import Optional, Tuple
from pos_core.catalog import PromoCatalog, enabled_products
from pos_core.checkout import complete_checkout
from pos_core.config import AppConfig
from pos_core.currency import currency_params
from pos_core.domain import (
    Cart,
    CurrencyParams,
    ExchangeRates,
    PricingResult,
    Product,
    ProductType,
    SettlementParams,
    Transaction,
)
from pos_core.ftypes import Either
from pos_core.history import (
    delete_transaction,
    iter_transactions_by_day,
    record_transaction,
    update_transaction,
)
from pos_core.pricing import compute_totals


class RegisterService:
    """Фасад кассы: текущая конфигурация + расчёт итогов + оформление"""

    def __init__(
        self,
        types: Tuple[ProductType, ...],
        products: Tuple[Product, ...],
        catalog: PromoCatalog,
        rates: ExchangeRates,
        settings: AppConfig,
    ):
        self.types = types
        self.products = products
        self.catalog = catalog
        self.rates = rates
        self.settings = settings

    def currency(self, display_currency: str) -> CurrencyParams:
        return currency_params(
            self.rates,
            self.settings.main_currency,
            display_currency,
            self.settings.currency_round_up,
        )

    def settlement(self) -> SettlementParams:
        return SettlementParams(rates=self.rates, currencies=self.settings.settlement_currencies())

    def products_by_type(self) -> Tuple[Tuple[ProductType, Tuple[Product, ...]], ...]:
        """Включённые товары, сгруппированные по включённым типам (для кнопок кассы)"""
        products = enabled_products(self.products)
        return tuple(
            (t, tuple(p for p in products if p.type_id == t.id))
            for t in self.types
            if t.enabled
        )

    def totals(self, cart: Cart, display_currency: str) -> PricingResult:
        return compute_totals(
            cart.lines,
            self.types,
            self.catalog,
            cart.override_total,
            self.currency(display_currency),
        )

    def checkout(
        self,
        cart: Cart,
        display_currency: str,
        payment_method: str,
        locked: bool,
        email: Optional[str] = None,
    ) -> Either[dict, Transaction]:
        return complete_checkout(
            cart.lines,
            self.types,
            self.catalog,
            payment_method,
            locked,
            override_total=cart.override_total,
            currency=self.currency(display_currency),
            settlement=self.settlement(),
            discount_type_ids=self.settings.discount_type_ids,
            email=email,
        )


class HistoryService:
    """Фасад истории транзакций мероприятия"""

    def __init__(self, transactions: Tuple[Transaction, ...], locked: bool = False):
        self.transactions = transactions
        self.locked = locked

    def by_day(self, day: str) -> Tuple[Transaction, ...]:
        """Транзакции за день (материализация ленивого генератора)"""
        return tuple(iter_transactions_by_day(self.transactions, day))

    def record(self, transaction: Transaction) -> "HistoryService":
        return HistoryService(record_transaction(self.transactions, transaction), self.locked)

    def delete(self, transaction_id: str) -> Either[dict, "HistoryService"]:
        return delete_transaction(self.transactions, transaction_id, self.locked).map(
            lambda txs: HistoryService(txs, self.locked)
        )

    def update(self, transaction_id: str, updates: dict) -> Either[dict, "HistoryService"]:
        return update_transaction(self.transactions, transaction_id, updates, self.locked).map(
            lambda txs: HistoryService(txs, self.locked)
        )
