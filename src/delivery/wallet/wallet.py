"""Wallet aggregate (CQRS): per-user balance, escrow, and ledger.

Every user owns exactly one Wallet, created lazily on first access. The
wallet holds two sub-balances:

    balance: funds the user can spend or deposit into escrow
    escrow:  funds held against an in-flight order

Every mutation appends exactly one LedgerEntry carrying the balance and
escrow deltas it applied, so replaying the entries in order from (0, 0)
reproduces the stored pair. Both sub-balances are non-negative at all times;
an operation that would overdraw fails before anything is recorded.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from delivery.domain import delivery
from delivery.errors import InsufficientFunds
from delivery.utils.money import money
from delivery.wallet.events import (
    EscrowReleased,
    FundsEscrowed,
    WalletOpened,
    WalletToppedUp,
)


class Direction(Enum):
    IN = "In"
    OUT = "Out"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Wallet")
class LedgerEntry:
    """An immutable record of one wallet mutation.

    ``amount`` is the magnitude shown to the user; ``balance_delta`` and
    ``escrow_delta`` are the signed changes actually applied, which is what
    replay needs when a release credits a different amount than it frees.
    """

    direction = String(choices=Direction, required=True)
    amount = Float(required=True, min_value=0.0)
    balance_delta = Float(required=True)
    escrow_delta = Float(required=True)
    description = String(max_length=255)
    order_id = Identifier()
    sequence = Integer(required=True, min_value=1)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@delivery.aggregate
class Wallet:
    """A user's available balance, escrow-held funds, and ledger."""

    user_id = Identifier(identifier=True, required=True)
    balance = Float(default=0.0)
    escrow = Float(default=0.0)
    entries = HasMany(LedgerEntry)
    next_sequence = Integer(default=1)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def balance_cannot_be_negative(self):
        if self.balance is not None and self.balance < 0:
            raise ValidationError({"balance": ["Wallet balance cannot be negative"]})

    @invariant.post
    def escrow_cannot_be_negative(self):
        if self.escrow is not None and self.escrow < 0:
            raise ValidationError({"escrow": ["Wallet escrow cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, user_id):
        """Open an empty wallet for a user."""
        now = datetime.now(UTC)
        wallet = cls(
            user_id=str(user_id),
            balance=0.0,
            escrow=0.0,
            next_sequence=1,
            created_at=now,
            updated_at=now,
        )
        wallet.raise_(WalletOpened(user_id=str(user_id), opened_at=now))
        return wallet

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _positive(amount, field="amount"):
        value = money(amount)
        if value <= 0:
            raise ValidationError({field: ["Amount must be positive"]})
        return value

    def _record(self, direction, amount, balance_delta, escrow_delta, description, order_id=None):
        """Apply both deltas and append the matching entry as one change."""
        now = datetime.now(UTC)
        entry = LedgerEntry(
            direction=direction.value,
            amount=money(amount),
            balance_delta=money(balance_delta),
            escrow_delta=money(escrow_delta),
            description=(description or "")[:255],
            order_id=str(order_id) if order_id else None,
            sequence=self.next_sequence,
            recorded_at=now,
        )
        with atomic_change(self):
            self.balance = money(self.balance + balance_delta)
            self.escrow = money(self.escrow + escrow_delta)
            self.next_sequence = self.next_sequence + 1
            self.add_entries(entry)
            self.updated_at = now
        return entry

    # -------------------------------------------------------------------
    # Ledger operations
    # -------------------------------------------------------------------
    def top_up(self, amount, description="Wallet top-up"):
        """Credit the available balance."""
        value = self._positive(amount)
        entry = self._record(Direction.IN, value, value, 0.0, description)
        self.raise_(
            WalletToppedUp(
                user_id=str(self.user_id),
                amount=value,
                new_balance=self.balance,
                sequence=entry.sequence,
                topped_up_at=entry.recorded_at,
            )
        )
        return entry

    def can_afford(self, amount) -> bool:
        return money(self.balance) >= money(amount)

    def debit(self, amount, description, order_id=None):
        """Move ``amount`` from the available balance into escrow."""
        value = self._positive(amount)
        if not self.can_afford(value):
            raise InsufficientFunds(
                {"balance": [f"Insufficient balance: {money(self.balance):.2f} available, {value:.2f} required"]}
            )

        entry = self._record(Direction.OUT, value, -value, value, description, order_id)
        self.raise_(
            FundsEscrowed(
                user_id=str(self.user_id),
                order_id=str(order_id) if order_id else None,
                amount=value,
                new_balance=self.balance,
                new_escrow=self.escrow,
                description=entry.description,
                sequence=entry.sequence,
                escrowed_at=entry.recorded_at,
            )
        )
        return entry

    def release_escrow_to_balance(self, escrow_amount, balance_delta, description, order_id=None):
        """Free ``escrow_amount`` from escrow and credit ``balance_delta``.

        The two amounts differ during settlement: the store frees its fee
        deposit but is credited the product price.
        """
        freed = self._positive(escrow_amount, field="escrow_amount")
        credited = money(balance_delta)
        if credited < 0:
            raise ValidationError({"balance_delta": ["Credited amount cannot be negative"]})
        if money(self.escrow) < freed:
            raise InsufficientFunds(
                {"escrow": [f"Insufficient escrow: {money(self.escrow):.2f} held, {freed:.2f} to release"]}
            )

        entry = self._record(Direction.IN, credited, credited, -freed, description, order_id)
        self.raise_(
            EscrowReleased(
                user_id=str(self.user_id),
                order_id=str(order_id) if order_id else None,
                escrow_amount=freed,
                balance_amount=credited,
                new_balance=self.balance,
                new_escrow=self.escrow,
                description=entry.description,
                sequence=entry.sequence,
                released_at=entry.recorded_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------
    def history(self):
        """Ledger entries, newest first."""
        return sorted(self.entries or [], key=lambda e: (e.recorded_at, e.sequence), reverse=True)

    def replay(self):
        """Rebuild (balance, escrow) from the ledger, starting at zero."""
        balance = escrow = 0.0
        for entry in sorted(self.entries or [], key=lambda e: (e.recorded_at, e.sequence)):
            balance = money(balance + entry.balance_delta)
            escrow = money(escrow + entry.escrow_delta)
        return balance, escrow

    def drift(self):
        """Difference between stored and replayed sub-balances."""
        balance, escrow = self.replay()
        return money(self.balance - balance), money(self.escrow - escrow)
