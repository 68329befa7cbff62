"""
Comprehensive type system for the promotions platform
Rust-inspired Result pattern, money primitives and structured domain errors.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Generic, TypeVar

from django.conf import settings

from apps.common.constants import PERCENTAGE_MAX, PERCENTAGE_MIN

# Type variables for generic Result
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type

# ===============================================================================
# RESULT TYPES
# ===============================================================================


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Success result containing a value"""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value"""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get the success value (ignores default)"""
        return self.value

    def map(self, func: Callable[[T], Any]) -> Result[Any, Any]:
        """Transform the success value"""
        return Ok(func(self.value))

    def and_then(self, func: Callable[[T], Result[Any, Any]]) -> Result[Any, Any]:
        """Chain operations that can fail"""
        return func(self.value)

    def unwrap_err(self) -> Any:
        """Raises an exception since this is success, not error - provides consistent API"""
        raise ValueError(f"Called unwrap_err on Ok: {self.value}")


@dataclass(frozen=True)
class Err(Generic[E]):
    """Error result containing an error value"""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Raises an exception - use unwrap_or() for safe access"""
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Get the default value since this is an error"""
        return default

    def map(self, func: Callable[[Any], Any]) -> Result[Any, E]:
        """No-op for error results"""
        return self

    def and_then(self, func: Callable[[Any], Result[Any, Any]]) -> Result[Any, E]:
        """No-op for error results - return self"""
        return self

    def unwrap_err(self) -> E:
        """Get the error value"""
        return self.error


# Result type alias
Result = Ok[T] | Err[E]

# ===============================================================================
# DOMAIN ERRORS
# ===============================================================================


class ErrorKind(Enum):
    """Taxonomy of expected business-rule failures"""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STATE_CONFLICT = "state_conflict"


@dataclass(frozen=True)
class DomainError:
    """Structured, machine-readable business error"""

    code: str
    description: str
    kind: ErrorKind = ErrorKind.VALIDATION

    @classmethod
    def validation(cls, code: str, description: str) -> DomainError:
        return cls(code=code, description=description, kind=ErrorKind.VALIDATION)

    @classmethod
    def conflict(cls, code: str, description: str) -> DomainError:
        return cls(code=code, description=description, kind=ErrorKind.CONFLICT)

    @classmethod
    def not_found(cls, code: str, description: str) -> DomainError:
        return cls(code=code, description=description, kind=ErrorKind.NOT_FOUND)

    @classmethod
    def state_conflict(cls, code: str, description: str) -> DomainError:
        return cls(code=code, description=description, kind=ErrorKind.STATE_CONFLICT)

    def __str__(self) -> str:
        return f"{self.code}: {self.description}"


ValidationErrors = list[DomainError]

# ===============================================================================
# MONEY & PERCENTAGE
# ===============================================================================


@dataclass(frozen=True, order=True)
class Money:
    """Non-negative money amount in minor currency units (cents/bani)"""

    amount: int  # Store in cents/bani for precision
    currency: str = "RON"

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Money amount must be an integer number of minor units: {self.amount!r}")
        if self.amount < 0:
            raise ValueError(f"Money amount cannot be negative: {self.amount}")
        if self.currency not in settings.SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str | None = None) -> Money:
        return cls(0, currency or settings.DEFAULT_CURRENCY)

    @classmethod
    def from_decimal(cls, amount: Decimal | str, currency: str = "RON") -> Money:
        """Create Money from a major-unit decimal amount, truncating sub-cent fractions"""
        cents = (Decimal(amount) * 100).to_integral_value(rounding=ROUND_DOWN)
        return cls(int(cents), currency)

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Currency mismatch: {self.currency} vs {other.currency}")

    def __add__(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def times(self, quantity: int) -> Money:
        return Money(self.amount * quantity, self.currency)

    def min(self, other: Money) -> Money:
        self._check_currency(other)
        return self if self.amount <= other.amount else other

    def apply_percentage(self, percentage: Percentage) -> Money:
        """Percentage of this amount, truncated toward zero on minor units"""
        portion = (Decimal(self.amount) * percentage.value).to_integral_value(rounding=ROUND_DOWN)
        return Money(int(portion), self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def to_decimal(self) -> Decimal:
        """Get major-unit decimal amount"""
        return Decimal(self.amount) / 100

    def __str__(self) -> str:
        if self.currency == "RON":
            return f"{self.to_decimal():.2f} lei"
        else:
            return f"{self.currency} {self.to_decimal():.2f}"


@dataclass(frozen=True)
class Percentage:
    """Discount rate where Decimal('1') represents 100%"""

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise ValueError(f"Percentage requires a Decimal value: {self.value!r}")
        if not self.value.is_finite():
            raise ValueError(f"Percentage must be finite: {self.value}")

    @classmethod
    def parse(cls, raw: Decimal | str | int | float) -> Percentage:
        """Build a Percentage from user input; floats go through str() to avoid binary noise"""
        try:
            value = Decimal(str(raw)) if isinstance(raw, float) else Decimal(raw)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"Invalid percentage value: {raw!r}") from e
        return cls(value)

    @property
    def is_valid_rate(self) -> bool:
        """True for 0 < value <= 1"""
        return PERCENTAGE_MIN < self.value <= PERCENTAGE_MAX

    def __str__(self) -> str:
        return f"{(self.value * 100).normalize():f}%"
