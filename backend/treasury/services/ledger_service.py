"""
Account ledger: the signed effect of transactions on account balances.

Every balance change goes through ``apply_effect``. Mutation paths build the
effect of the stored state and of the new state and apply only the
difference, so a create followed by a delete leaves the balance exactly
where it started.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from treasury.exceptions import NotFoundError
from treasury.models.account import Account
from treasury.models.transaction import Transaction, TransactionType
from treasury.models.types import quantize_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def net_impact(
    transaction_type: TransactionType,
    amount: Decimal,
    fee_amount: Optional[Decimal] = None,
) -> Decimal:
    """Signed change to the source account, fee included.

    The fee always reduces the source account, whatever the type.
    """
    fee = fee_amount or ZERO
    if transaction_type == TransactionType.INCOME:
        return amount - fee
    return -(amount + fee)


def destination_impact(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """Signed change to the destination account (transfers only)."""
    if transaction_type == TransactionType.TRANSFER:
        return amount
    return ZERO


@dataclass(frozen=True)
class LedgerEffect:
    """Per-account signed balance changes caused by one transaction state."""

    deltas: dict = field(default_factory=dict)

    def reversed(self) -> "LedgerEffect":
        return LedgerEffect({account_id: -delta for account_id, delta in self.deltas.items()})

    def delta_to(self, new: "LedgerEffect") -> "LedgerEffect":
        """Effect that moves balances from this state to ``new``."""
        combined = dict(new.deltas)
        for account_id, delta in self.deltas.items():
            combined[account_id] = combined.get(account_id, ZERO) - delta
        return LedgerEffect(combined)

    def for_account(self, account_id: str) -> Decimal:
        return self.deltas.get(account_id, ZERO)

    def is_empty(self) -> bool:
        return all(delta == ZERO for delta in self.deltas.values())


def effect_of(
    account_id: str,
    transaction_type: TransactionType,
    amount: Decimal,
    fee_amount: Optional[Decimal] = None,
    destination_account_id: Optional[str] = None,
) -> LedgerEffect:
    """Full effect of a transaction state on its source and destination."""
    deltas = {account_id: net_impact(transaction_type, amount, fee_amount)}
    if transaction_type == TransactionType.TRANSFER and destination_account_id:
        deltas[destination_account_id] = (
            deltas.get(destination_account_id, ZERO)
            + destination_impact(transaction_type, amount)
        )
    return LedgerEffect(deltas)


def effect_of_transaction(transaction: Transaction) -> LedgerEffect:
    """Effect of a transaction row at stored precision."""
    return effect_of(
        account_id=transaction.account_id,
        transaction_type=transaction.transaction_type,
        amount=quantize_money(transaction.amount),
        fee_amount=quantize_money(transaction.fee_amount),
        destination_account_id=transaction.destination_account_id,
    )


def apply_effect(db: Session, effect: LedgerEffect) -> None:
    """Add each delta to its account balance inside the caller's unit of work.

    Uses ``balance = balance + :delta`` in SQL rather than read-then-write,
    so concurrent writers serialize on the account row instead of losing
    updates. Accounts are touched in id order to keep lock order stable.
    Does not commit.
    """
    for account_id in sorted(effect.deltas):
        delta = effect.deltas[account_id]
        if delta == ZERO:
            continue
        result = db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("Account", account_id)
        logger.debug("Applied balance delta", extra={"account_id": account_id, "delta": str(delta)})

    # Loaded Account objects no longer match the row
    for obj in list(db.identity_map.values()):
        if isinstance(obj, Account) and obj.id in effect.deltas:
            db.expire(obj, ["balance"])
