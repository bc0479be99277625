"""Settlement policies: who ends up holding the courier's collateral.

On completion the store always frees its fee deposit and is credited the
product price, and the courier always frees its collateral and is paid the
fee. The policies differ only on whether the collateral itself also comes
back to the courier:

    TRANSFER_COLLATERAL: courier balance += fee
        The collateral pays the store for the product. Money is conserved
        across the two wallets; the courier recovers the product price from
        the client on delivery.

    RETURN_COLLATERAL: courier balance += fee + product price
        The collateral is refunded in full, so the store's product-price
        credit is not funded by either wallet.
"""

from dataclasses import dataclass
from enum import Enum

from delivery.utils.money import money


@dataclass(frozen=True)
class Payout:
    """Ledger amounts for one settlement."""

    store_escrow_release: float
    store_credit: float
    courier_escrow_release: float
    courier_credit: float


class SettlementPolicy(Enum):
    TRANSFER_COLLATERAL = "transfer_collateral"
    RETURN_COLLATERAL = "return_collateral"

    def payout(self, fee, product_price) -> Payout:
        fee = money(fee)
        product_price = money(product_price)
        courier_credit = fee
        if self is SettlementPolicy.RETURN_COLLATERAL:
            courier_credit = money(fee + product_price)
        return Payout(
            store_escrow_release=fee,
            store_credit=product_price,
            courier_escrow_release=product_price,
            courier_credit=courier_credit,
        )
