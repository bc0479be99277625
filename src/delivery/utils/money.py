"""Amount helpers shared by the ledger and the order state machine."""

# Balances are compared and stored at cent precision
_PRECISION = 2


def money(value) -> float:
    return round(float(value or 0.0), _PRECISION)
