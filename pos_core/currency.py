import math
from dataclasses import replace
from .domain import CurrencyParams, ExchangeRates

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def convert(amount: float, from_rate: float, to_rate: float) -> float:
    """
    Переводит сумму между валютами: amount * (to_rate / from_rate).
    Курсы заданы относительно общей базы и должны быть > 0 (не проверяется).
    """
    return amount * (to_rate / from_rate)


def round_up(amount: float) -> float:
    return float(math.ceil(amount))


def effective_rate(rates: ExchangeRates, currency: str) -> float:
    """Ручной курс имеет приоритет над загруженным; неизвестная валюта -> KeyError"""
    if currency in rates.custom_rates:
        return rates.custom_rates[currency]
    return rates.rates[currency]


def with_custom_rate(rates: ExchangeRates, currency: str, rate: float) -> ExchangeRates:
    return replace(rates, custom_rates={**rates.custom_rates, currency: rate})


def clear_custom_rates(rates: ExchangeRates) -> ExchangeRates:
    return replace(rates, custom_rates={})


def currency_params(
    rates: ExchangeRates, main: str, display: str, round_up_enabled: bool = False
) -> CurrencyParams:
    return CurrencyParams(
        main_currency=main,
        display_currency=display,
        main_rate=effective_rate(rates, main),
        display_rate=effective_rate(rates, display),
        round_up=round_up_enabled,
    )


def format_amount(amount: float, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol}{amount:.2f}"
