"""
ethadapter SDK - chain-agnostic transaction, account and contract API
for Ethereum JSON-RPC nodes.
"""
from .version import __version__
from .client import EthClient
from .config import NetworkConfig
from .chains import ChainInfo, ChainRegistry, DEFAULT_REGISTRY, Era
from .signer import SignerScheme, latest_scheme, select_scheme
from .transaction import Transaction, TxBuilder
from .address import parse_address
from .models import AccountSnapshot, CallInvocation, TransactionRecord, TxReceipt
from .types import SignerKind, TxState
from .exceptions import (
    ChainAdapterError,
    ExecutionError,
    InvalidAddressError,
    NetworkError,
    NotFoundError,
    RevertedError,
    SignerMismatchError,
    TransportError,
    UnknownChainError,
    UnsupportedTransactionTypeError,
)

__all__ = [
    "EthClient",
    "NetworkConfig",
    "ChainInfo",
    "ChainRegistry",
    "DEFAULT_REGISTRY",
    "Era",
    "SignerScheme",
    "SignerKind",
    "latest_scheme",
    "select_scheme",
    "Transaction",
    "TxBuilder",
    "parse_address",
    "AccountSnapshot",
    "CallInvocation",
    "TransactionRecord",
    "TxReceipt",
    "TxState",
    "ChainAdapterError",
    "ExecutionError",
    "InvalidAddressError",
    "NetworkError",
    "NotFoundError",
    "RevertedError",
    "SignerMismatchError",
    "TransportError",
    "UnknownChainError",
    "UnsupportedTransactionTypeError",
    "__version__",
]
