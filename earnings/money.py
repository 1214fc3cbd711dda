from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import total_ordering
from typing import Any, Union

from pydantic_core import core_schema

from .errors import InvalidAmountError


CENT = Decimal("0.01")
MAX_CENTS = 10 ** 15

AmountLike = Union["Money", Decimal, str, int, float]


@total_ordering
class Money:
    """
    Non-negative amount in the platform's base currency.

    Held as an integer number of cents. Every public conversion goes through
    Decimal and reports exactly two fractional digits; binary floats are only
    accepted at the parsing boundary (JSON numbers) via their repr.
    """

    __slots__ = ("_cents",)

    def __init__(self, cents: int = 0):
        if isinstance(cents, bool) or not isinstance(cents, int):
            raise InvalidAmountError(f"Money must be built from integer cents, got {cents!r}")
        if cents < 0:
            raise InvalidAmountError(f"Amount cannot be negative: {Decimal(cents).scaleb(-2)}")
        if cents > MAX_CENTS:
            raise InvalidAmountError("Amount exceeds the supported maximum")
        self._cents = cents

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, value: AmountLike) -> "Money":
        if isinstance(value, Money):
            return value
        if isinstance(value, bool):
            raise InvalidAmountError(f"Not a monetary amount: {value!r}")
        try:
            if isinstance(value, float):
                amount = Decimal(repr(value))
            elif isinstance(value, (Decimal, int)):
                amount = Decimal(value)
            elif isinstance(value, str):
                amount = Decimal(value.strip())
            else:
                raise InvalidAmountError(f"Not a monetary amount: {value!r}")
        except InvalidOperation:
            raise InvalidAmountError(f"Not a monetary amount: {value!r}")

        if not amount.is_finite():
            raise InvalidAmountError(f"Not a monetary amount: {value!r}")
        if amount < 0:
            raise InvalidAmountError(f"Amount cannot be negative: {value}")
        try:
            quantized = amount.quantize(CENT)
        except InvalidOperation:
            raise InvalidAmountError("Amount exceeds the supported maximum")
        if quantized != amount:
            raise InvalidAmountError(f"Amount has more than two decimal places: {value}")
        return cls(int(quantized.scaleb(2)))

    @property
    def cents(self) -> int:
        return self._cents

    @property
    def amount(self) -> Decimal:
        return Decimal(self._cents).scaleb(-2)

    def percent_of(self, rate_percent: Decimal) -> "Money":
        """Return ``rate_percent`` % of this amount, rounded half-up to the cent."""
        rate = Decimal(rate_percent)
        if not rate.is_finite() or rate < 0:
            raise InvalidAmountError(f"Invalid percentage: {rate_percent}")
        share = (Decimal(self._cents) * rate / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return Money(int(share))

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self._cents + other._cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self._cents - other._cents)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self._cents == other._cents

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self._cents < other._cents

    def __hash__(self) -> int:
        return hash(self._cents)

    def __bool__(self) -> bool:
        return self._cents != 0

    def __str__(self) -> str:
        return str(self.amount)

    def __repr__(self) -> str:
        return f"Money('{self}')"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema: Any, handler: Any) -> dict:
        return {"type": "string", "pattern": r"^\d+\.\d{2}$", "examples": ["500.00"]}
