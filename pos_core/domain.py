from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict

PROMO_TYPE_LIST = "type_list"
PROMO_COMBO = "combo"

CURRENCIES = ("USD", "EUR", "GBP")
PAYMENT_METHODS = ("cash", "card", "qr")


@dataclass(frozen=True)
class ProductType:
    id: str
    name: str
    order: int = 0
    enabled: bool = True
    color: str = ""


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float  # в основной валюте каталога
    type_id: str
    promo_eligible: bool = False
    order: int = 0
    enabled: bool = True
    color: str = ""
    subgroup: Optional[str] = None


@dataclass(frozen=True)
class CartLine:
    product: Product
    quantity: int
    override_price: Optional[float] = None


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = ()
    override_total: Optional[float] = None


@dataclass(frozen=True)
class Promo:
    """
    Промо-акция.
    type_list: таблица цен по количеству (2..max_quantity) + поштучные надбавки сверху
    combo: фиксированная цена за набор (по одной единице каждого товара)
    """

    id: str
    name: str
    mode: str  # "type_list" | "combo"
    order: int = 0
    type_id: Optional[str] = None
    max_quantity: int = 0
    prices: Dict[int, float] = field(default_factory=dict)
    incremental_price: Optional[float] = None
    incremental_price_10_plus: Optional[float] = None
    combo_product_ids: Tuple[str, ...] = ()
    combo_price: Optional[float] = None


@dataclass(frozen=True)
class CurrencyParams:
    main_currency: str
    display_currency: str
    main_rate: float = 1.0
    display_rate: float = 1.0
    round_up: bool = False


@dataclass(frozen=True)
class ExchangeRates:
    """Курсы относительно USD + ручные (custom) курсы, которые имеют приоритет"""

    rates: Dict[str, float]
    custom_rates: Dict[str, float] = field(default_factory=dict)
    last_updated: str = ""


@dataclass(frozen=True)
class SettlementParams:
    rates: ExchangeRates
    currencies: Dict[str, str] = field(default_factory=dict)  # метод оплаты -> валюта


@dataclass(frozen=True)
class PricingResult:
    subtotal: float
    discount: float
    total: float
    applied_promotions: Tuple[str, ...]
    has_overrides: bool
    currency: str = ""
    conversion_rate: float = 1.0
    override_total: Optional[float] = None
    type_discounts: Dict[str, float] = field(default_factory=dict)  # type_id -> скидка (основная валюта)


@dataclass(frozen=True)
class TransactionItem:
    product: Product  # price = эффективная цена за единицу
    quantity: int


@dataclass(frozen=True)
class Transaction:
    id: str
    items: Tuple[TransactionItem, ...]
    subtotal: float
    discount: float
    total: float
    currency: str
    payment_method: str
    timestamp: str
    applied_promotions: Tuple[str, ...] = ()
    email: Optional[str] = None
    override_total: Optional[float] = None
    original_currency: Optional[str] = None
    original_total: Optional[float] = None
    original_subtotal: Optional[float] = None


@dataclass(frozen=True)
class Event:
    id: str
    ts: str
    name: str
    payload: Dict
