"""Error kinds raised by the delivery core.

``InsufficientFunds`` and ``StateConflict`` are validation failures and are
always raised before anything is mutated. Missing records surface as Protean's
own ``ObjectNotFoundError`` (re-exported here as ``NotFound``).
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

NotFound = ObjectNotFoundError


class InsufficientFunds(ValidationError):
    """A debit or escrow release would take a wallet below zero."""


class StateConflict(ValidationError):
    """The operation is not valid for the order's current status."""


class Unauthenticated(InvalidOperationError):
    """No acting user was supplied."""


def require_actor(actor_id):
    """Return the acting user's id, or raise Unauthenticated."""
    actor = str(actor_id).strip() if actor_id is not None else ""
    if not actor:
        raise Unauthenticated({"actor_id": ["An acting user is required"]})
    return actor
