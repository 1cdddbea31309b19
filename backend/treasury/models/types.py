"""
Column types shared by the models.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

MONEY_PLACES = 4
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)


def quantize_money(value) -> Optional[Decimal]:
    """Round to the stored precision, half to even."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


class Money(TypeDecorator):
    """
    Exact money amount stored as an integer count of ten-thousandths.

    SQLite keeps ``NUMERIC`` as a float, so ``balance + :delta`` would round.
    Integers add exactly on every backend. Bound values (including the right
    side of ``Account.balance + delta``) go through ``process_bind_param``.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(quantize_money(value).scaleb(MONEY_PLACES))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-MONEY_PLACES)
