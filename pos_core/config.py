import os
from dataclasses import dataclass, field
from typing import Dict, Tuple


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class AppConfig:
    # Валюты
    main_currency: str = field(default_factory=lambda: os.getenv("POS_MAIN_CURRENCY", "EUR"))
    currency_round_up: bool = field(default_factory=lambda: _env_flag("POS_CURRENCY_ROUND_UP"))
    card_settlement_currency: str = field(
        default_factory=lambda: os.getenv("POS_CARD_SETTLEMENT_CURRENCY", "EUR")
    )

    # Типы, на строки которых распределяется скидка автоматических промо
    discount_type_ids: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("POS_DISCOUNT_TYPE_IDS")
    )

    # Пути
    catalog_path: str = field(default_factory=lambda: os.getenv("POS_CATALOG_PATH", "data/catalog.json"))
    rates_path: str = field(default_factory=lambda: os.getenv("POS_RATES_PATH", "data/rates.json"))
    history_path: str = field(default_factory=lambda: os.getenv("POS_HISTORY_PATH", "data/history.json"))

    log_level: str = field(default_factory=lambda: os.getenv("POS_LOG_LEVEL", "INFO"))

    def settlement_currencies(self) -> Dict[str, str]:
        """Карта: метод оплаты -> валюта расчёта (cash и qr остаются в валюте показа)"""
        return {"card": self.card_settlement_currency}


config = AppConfig()
