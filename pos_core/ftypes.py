# pos_core/ftypes.py
# Small result types: Maybe for lookups that may miss,
# Either for operations that the register may refuse (locked event, empty cart).

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
L = TypeVar("L")
R = TypeVar("R")


@dataclass(frozen=True)
class Maybe(Generic[T]):
    """
    Результат поиска (товар по id, промо для типа, транзакция).
    Maybe(None) = ничего не найдено; to_either превращает промах в отказ.
    """

    value: Optional[T]

    def __init__(self, value: Optional[T]):
        object.__setattr__(self, "value", value)

    def is_none(self) -> bool:
        return self.value is None

    def get_or_else(self, default: U) -> T | U:
        return default if self.is_none() else self.value

    def to_either(self, message: str) -> "Either[dict, T]":
        """Найдено -> Right(value), иначе Left({"error": message})"""
        return Either.refuse(message) if self.is_none() else Either.right(self.value)

    def __repr__(self) -> str:
        return "Nothing" if self.is_none() else f"Found({self.value})"


@dataclass(frozen=True)
class Either(Generic[L, R]):
    """
    Either<L, R>: Left: отказ в виде {"error": "..."}, Right: результат.

    Отказ никогда не бросается исключением: вызывающий код обязан
    показать его пользователю (см. fold).
    """

    is_left: bool
    value: Union[L, R]

    @staticmethod
    def right(value: R) -> "Either[L, R]":
        return Either(False, value)

    @staticmethod
    def refuse(message: str) -> "Either[dict, R]":
        return Either(True, {"error": message})

    def __init__(self, is_left: bool, value: Union[L, R]):
        object.__setattr__(self, "is_left", is_left)
        object.__setattr__(self, "value", value)

    @property
    def is_right(self) -> bool:
        return not self.is_left

    def map(self, fn: Callable[[R], U]) -> "Either[L, U]":
        """Преобразует только успешный результат; отказ проходит насквозь"""
        return self if self.is_left else Either.right(fn(self.value))  # type: ignore[return-value]

    def fold(self, on_left: Callable[[L], U], on_right: Callable[[R], U]) -> U:
        return on_left(self.value) if self.is_left else on_right(self.value)  # type: ignore[arg-type]

    def get_or_else(self, default: U) -> R | U:
        return default if self.is_left else self.value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Left({self.value})" if self.is_left else f"Right({self.value})"
