"""Monetary amount type shared by tasks, payments and reports."""

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer


def serialize_money(value: Decimal) -> int | float:
    """Render whole amounts as integers, fractional amounts as floats."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(serialize_money, return_type=int | float, when_used="json")]
