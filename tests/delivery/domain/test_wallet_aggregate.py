"""Tests for the Wallet aggregate: sub-balances, ledger entries, replay."""

import pytest
from protean.exceptions import ValidationError

from delivery.errors import InsufficientFunds
from delivery.wallet.events import EscrowReleased, FundsEscrowed, WalletOpened, WalletToppedUp
from delivery.wallet.wallet import Direction, Wallet


def _funded_wallet(amount=100.0, user_id="user-001"):
    wallet = Wallet.open(user_id)
    wallet.top_up(amount)
    wallet._events.clear()
    return wallet


class TestWalletOpening:
    def test_opens_with_zero_balances(self):
        wallet = Wallet.open("user-001")
        assert wallet.user_id == "user-001"
        assert wallet.balance == 0.0
        assert wallet.escrow == 0.0
        assert len(wallet.entries) == 0

    def test_open_raises_wallet_opened(self):
        wallet = Wallet.open("user-001")
        assert isinstance(wallet._events[0], WalletOpened)

    def test_negative_balance_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Wallet(user_id="user-001", balance=-1.0, escrow=0.0)
        assert "balance" in exc.value.messages

    def test_negative_escrow_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Wallet(user_id="user-001", balance=0.0, escrow=-0.5)
        assert "escrow" in exc.value.messages


class TestTopUp:
    def test_top_up_credits_balance(self):
        wallet = Wallet.open("user-001")
        wallet.top_up(25.0)
        assert wallet.balance == 25.0
        assert wallet.escrow == 0.0

    def test_top_up_records_in_entry(self):
        wallet = Wallet.open("user-001")
        entry = wallet.top_up(25.0, description="Card top-up")
        assert entry.direction == Direction.IN.value
        assert entry.amount == 25.0
        assert entry.balance_delta == 25.0
        assert entry.escrow_delta == 0.0
        assert entry.description == "Card top-up"
        assert entry.sequence == 1

    def test_top_up_raises_event(self):
        wallet = Wallet.open("user-001")
        wallet._events.clear()
        wallet.top_up(25.0)
        assert len(wallet._events) == 1
        assert isinstance(wallet._events[0], WalletToppedUp)
        assert wallet._events[0].new_balance == 25.0

    @pytest.mark.parametrize("amount", [0, -5.0])
    def test_non_positive_top_up_rejected(self, amount):
        wallet = Wallet.open("user-001")
        with pytest.raises(ValidationError):
            wallet.top_up(amount)
        assert wallet.balance == 0.0
        assert len(wallet.entries) == 0

    def test_amounts_rounded_to_cents(self):
        wallet = Wallet.open("user-001")
        wallet.top_up(10.129)
        assert wallet.balance == 10.13


class TestDebit:
    def test_debit_moves_funds_into_escrow(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(30.0, description="Collateral", order_id="ord-001")
        assert wallet.balance == 70.0
        assert wallet.escrow == 30.0

    def test_debit_records_out_entry(self):
        wallet = _funded_wallet(100.0)
        entry = wallet.debit(30.0, description="Collateral", order_id="ord-001")
        assert entry.direction == Direction.OUT.value
        assert entry.amount == 30.0
        assert entry.balance_delta == -30.0
        assert entry.escrow_delta == 30.0
        assert entry.order_id == "ord-001"

    def test_debit_raises_funds_escrowed(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(30.0, description="Collateral", order_id="ord-001")
        event = wallet._events[0]
        assert isinstance(event, FundsEscrowed)
        assert event.new_balance == 70.0
        assert event.new_escrow == 30.0

    def test_debit_of_full_balance_allowed(self):
        wallet = _funded_wallet(50.0)
        wallet.debit(50.0, description="Collateral")
        assert wallet.balance == 0.0
        assert wallet.escrow == 50.0

    def test_insufficient_balance_changes_nothing(self):
        wallet = _funded_wallet(20.0)
        with pytest.raises(InsufficientFunds) as exc:
            wallet.debit(50.0, description="Collateral")
        assert "balance" in exc.value.messages
        assert wallet.balance == 20.0
        assert wallet.escrow == 0.0
        assert len(wallet.entries) == 1
        assert wallet._events == []

    def test_can_afford(self):
        wallet = _funded_wallet(20.0)
        assert wallet.can_afford(20.0)
        assert not wallet.can_afford(20.01)


class TestEscrowRelease:
    def test_release_frees_escrow_and_credits_balance(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(7.0, description="Fee")
        wallet.release_escrow_to_balance(7.0, 50.0, description="Settlement")
        assert wallet.escrow == 0.0
        assert wallet.balance == 143.0

    def test_release_records_signed_deltas(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(7.0, description="Fee")
        entry = wallet.release_escrow_to_balance(7.0, 50.0, description="Settlement", order_id="ord-001")
        assert entry.direction == Direction.IN.value
        assert entry.amount == 50.0
        assert entry.balance_delta == 50.0
        assert entry.escrow_delta == -7.0

    def test_release_raises_event(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(7.0, description="Fee")
        wallet._events.clear()
        wallet.release_escrow_to_balance(7.0, 50.0, description="Settlement")
        assert isinstance(wallet._events[0], EscrowReleased)

    def test_release_more_than_held_rejected(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(7.0, description="Fee")
        with pytest.raises(InsufficientFunds) as exc:
            wallet.release_escrow_to_balance(10.0, 10.0, description="Settlement")
        assert "escrow" in exc.value.messages
        assert wallet.escrow == 7.0
        assert wallet.balance == 93.0

    def test_negative_credit_rejected(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(7.0, description="Fee")
        with pytest.raises(ValidationError):
            wallet.release_escrow_to_balance(7.0, -1.0, description="Settlement")


class TestLedgerReplay:
    def test_replay_matches_stored_balances(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(50.0, description="Collateral")
        wallet.release_escrow_to_balance(50.0, 7.0, description="Settlement")
        wallet.top_up(3.5)
        assert wallet.replay() == (wallet.balance, wallet.escrow)
        assert wallet.drift() == (0.0, 0.0)

    def test_drift_detected_when_balance_edited(self):
        wallet = _funded_wallet(100.0)
        wallet.balance = 120.0
        assert wallet.drift() == (20.0, 0.0)

    def test_sequence_increments_per_entry(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(10.0, description="Fee")
        wallet.top_up(5.0)
        assert sorted(e.sequence for e in wallet.entries) == [1, 2, 3]

    def test_history_is_newest_first(self):
        wallet = _funded_wallet(100.0)
        wallet.debit(10.0, description="Fee")
        wallet.top_up(5.0)
        assert [e.sequence for e in wallet.history()] == [3, 2, 1]
