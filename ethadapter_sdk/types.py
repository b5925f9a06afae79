"""
Shared enumerations for the ethadapter SDK.
"""
from enum import Enum


class SignerKind(str, Enum):
    """
    Signing digest rules, in protocol order.

    Each later kind accepts everything the earlier ones do.
    """
    FRONTIER = "frontier"
    HOMESTEAD = "homestead"
    EIP155 = "eip155"
    EIP2930 = "eip2930"
    LONDON = "london"


class TxState(str, Enum):
    """Lifecycle states reported by the transaction resolver."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    NOT_FOUND = "not_found"
