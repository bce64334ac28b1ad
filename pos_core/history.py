import logging
from dataclasses import fields, replace
from typing import Iterable, Iterator, Tuple
from .domain import Transaction
from .ftypes import Maybe, Either

logger = logging.getLogger(__name__)

READ_ONLY_FIELDS = frozenset({"id"})


def record_transaction(
    transactions: Tuple[Transaction, ...], transaction: Transaction
) -> Tuple[Transaction, ...]:
    """Новая транзакция попадает в начало истории"""
    return (transaction,) + transactions


def find_transaction(transactions: Tuple[Transaction, ...], transaction_id: str) -> Maybe[Transaction]:
    return Maybe(next((t for t in transactions if t.id == transaction_id), None))


# ============ Изменения (только для незаблокированного мероприятия) ============


def delete_transaction(
    transactions: Tuple[Transaction, ...], transaction_id: str, locked: bool
) -> Either[dict, Tuple[Transaction, ...]]:
    if locked:
        logger.warning("Cannot delete transaction %s: event is locked", transaction_id)
        return Either.refuse("Event is locked")

    return (
        find_transaction(transactions, transaction_id)
        .to_either(f"Transaction '{transaction_id}' not found")
        .map(lambda _: tuple(t for t in transactions if t.id != transaction_id))
    )


def update_transaction(
    transactions: Tuple[Transaction, ...], transaction_id: str, updates: dict, locked: bool
) -> Either[dict, Tuple[Transaction, ...]]:
    """
    Свободное редактирование полей транзакции.
    Left: мероприятие заблокировано, транзакция не найдена или поле неизвестно/нельзя менять
    """
    if locked:
        logger.warning("Cannot update transaction %s: event is locked", transaction_id)
        return Either.refuse("Event is locked")

    found = find_transaction(transactions, transaction_id).to_either(
        f"Transaction '{transaction_id}' not found"
    )
    editable = {f.name for f in fields(Transaction)} - READ_ONLY_FIELDS
    rejected = sorted(set(updates) - editable)
    if found.is_right and rejected:
        return Either.refuse(f"Fields cannot be edited: {', '.join(rejected)}")

    return found.map(
        lambda _: tuple(replace(t, **updates) if t.id == transaction_id else t for t in transactions)
    )


# ============ Ленивые выборки ============


## ленивый генератор: транзакции за день (ГГГГ-ММ-ДД)
def iter_transactions_by_day(transactions: Iterable[Transaction], day: str) -> Iterator[Transaction]:
    for transaction in transactions:
        if transaction.timestamp.startswith(day):
            yield transaction


def todays_sales(transactions: Tuple[Transaction, ...], today: str) -> Tuple[Transaction, ...]:
    return tuple(iter_transactions_by_day(transactions, today))
