"""
Exceptions for the ethadapter SDK.
"""
from typing import Any, Optional


class ChainAdapterError(Exception):
    """Base exception for all chain adapter errors."""
    pass


class NotFoundError(ChainAdapterError):
    """Raised when the node has no knowledge of a transaction."""

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"transaction {tx_hash} not found")


class RevertedError(ChainAdapterError):
    """Raised when a transaction was included but its execution failed."""

    def __init__(self, tx_hash: str, block_number: Optional[int] = None):
        self.tx_hash = tx_hash
        self.block_number = block_number
        super().__init__(f"transaction {tx_hash} reverted, receipt status 0")


class InvalidAddressError(ChainAdapterError, ValueError):
    """Raised when an address cannot be parsed into its chain-native form."""

    def __init__(self, address: Any, reason: str = "not a 20-byte hex address"):
        self.address = address
        super().__init__(f"bad address {address!r}: {reason}")


class UnknownChainError(ChainAdapterError):
    """Raised by the chain registry for an unregistered chain id."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"unknown chain id {chain_id}")


class UnsupportedTransactionTypeError(ChainAdapterError, TypeError):
    """Raised when a submission is not a transaction this SDK can broadcast."""

    def __init__(self, message: str, received: Any = None):
        self.received = received
        super().__init__(message)


class TransportError(ChainAdapterError):
    """Raised when an underlying RPC call fails, times out or is cancelled."""

    def __init__(self, message: str, cancelled: bool = False):
        self.cancelled = cancelled
        super().__init__(message)


class ExecutionError(ChainAdapterError):
    """Raised when a read-only contract call fails during execution."""

    def __init__(self, message: str, data: Optional[str] = None):
        self.data = data
        super().__init__(message)


class SignerMismatchError(ChainAdapterError):
    """Raised when a signer scheme cannot interpret a transaction."""

    def __init__(self, message: str, kind: Optional[str] = None):
        self.kind = kind
        super().__init__(message)


class NetworkError(ChainAdapterError):
    """Raised for network configuration problems."""
    pass
