"""Domain events for the Wallet aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="Wallet")
class WalletOpened:
    """A zero-balance wallet was created for a user on first access."""

    __version__ = 1

    user_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@delivery.event(part_of="Wallet")
class WalletToppedUp:
    """Funds were added to the wallet's available balance."""

    __version__ = 1

    user_id = Identifier(required=True)
    amount = Float(required=True)
    new_balance = Float(required=True)
    sequence = Integer(required=True)
    topped_up_at = DateTime(required=True)


@delivery.event(part_of="Wallet")
class FundsEscrowed:
    """Funds moved from the available balance into escrow."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier()
    amount = Float(required=True)
    new_balance = Float(required=True)
    new_escrow = Float(required=True)
    description = String(max_length=255)
    sequence = Integer(required=True)
    escrowed_at = DateTime(required=True)


@delivery.event(part_of="Wallet")
class EscrowReleased:
    """Escrow was released and the balance credited, possibly by a different amount."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier()
    escrow_amount = Float(required=True)
    balance_amount = Float(required=True)
    new_balance = Float(required=True)
    new_escrow = Float(required=True)
    description = String(max_length=255)
    sequence = Integer(required=True)
    released_at = DateTime(required=True)
