import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

from teambudget.domain import ExpenseDraft

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()

    @staticmethod
    def of(value: Optional[T]) -> 'Maybe[T]':
        return Nothing() if value is None else Some(value)


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Left(self._error)

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def safe_int(raw: Any) -> Maybe[int]:
    """Read an int the way a browser number field would.

    Leading whitespace and a sign are fine and anything after the digits is
    dropped, so "12abc" gives 12 and "3.7" gives 3.
    """
    if isinstance(raw, bool):
        return Nothing()
    if isinstance(raw, int):
        return Some(raw)
    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")):
            return Nothing()
        return Some(int(raw))
    if not isinstance(raw, str):
        return Nothing()
    match = _INT_PREFIX.match(raw)
    if match is None:
        return Nothing()
    return Some(int(match.group(1)))


def validate_draft(draft: ExpenseDraft) -> Either[dict, tuple[str, int]]:
    name = draft.name.strip()
    if not name:
        return Left({
            "error": "name_required",
            "message": "Expense needs a name",
        })

    amount = safe_int(draft.amount)
    if amount.is_none():
        return Left({
            "error": "amount_not_numeric",
            "message": f"Amount {draft.amount!r} is not a number",
            "amount": draft.amount,
        })

    value = amount.get_or_else(0)
    if value < 0:
        return Left({
            "error": "amount_negative",
            "message": f"Amount {value} is negative",
            "amount": value,
        })

    return Right((name, value))
