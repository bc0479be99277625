"""Wallet access and funding: get-or-create lookup, top-ups, history.

Wallets are created lazily: the first time any flow needs a user's wallet
it is opened with zero balances. Reads always go to the repository so a
dependent write is never computed from a stale copy.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.utils.logging import get_logger
from delivery.wallet.wallet import Wallet

logger = get_logger(__name__)


def find_wallet(user_id):
    """Return the user's wallet, or None when it has never been opened."""
    try:
        return current_domain.repository_for(Wallet).get(str(user_id))
    except ObjectNotFoundError:
        return None


def get_or_create_wallet(user_id):
    """Return the user's wallet, opening an empty one if absent.

    A freshly opened wallet is returned unsaved; the caller persists it along
    with whatever mutation it was opened for.
    """
    wallet = find_wallet(user_id)
    if wallet is None:
        logger.info("Opening wallet", user_id=str(user_id))
        wallet = Wallet.open(user_id)
    return wallet


def transaction_history(user_id):
    """Ledger entries for a user, newest first. Empty for unknown users."""
    wallet = find_wallet(user_id)
    return wallet.history() if wallet else []


@delivery.command(part_of="Wallet")
class OpenWallet:
    """Ensure a wallet exists for the user."""

    user_id = Identifier(required=True)


@delivery.command(part_of="Wallet")
class TopUpWallet:
    """Add funds to a user's available balance."""

    user_id = Identifier(required=True)
    amount = Float(required=True)
    description = String(max_length=255)


@delivery.command_handler(part_of=Wallet)
class WalletFundingHandler:
    @handle(OpenWallet)
    def open_wallet(self, command):
        wallet = get_or_create_wallet(command.user_id)
        current_domain.repository_for(Wallet).add(wallet)
        return str(wallet.user_id)

    @handle(TopUpWallet)
    def top_up_wallet(self, command):
        wallet = get_or_create_wallet(command.user_id)
        entry = wallet.top_up(command.amount, description=command.description or "Wallet top-up")
        current_domain.repository_for(Wallet).add(wallet)
        logger.info(
            "Wallet topped up",
            user_id=str(command.user_id),
            amount=entry.amount,
            new_balance=wallet.balance,
        )
        return wallet.balance
