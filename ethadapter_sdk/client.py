"""
EthClient - chain adapter for Ethereum JSON-RPC nodes.
"""
import logging
import threading
import urllib.parse
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar, Union

import requests
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import (
    ContractLogicError,
    TransactionIndexingInProgress,
    TransactionNotFound,
    Web3Exception,
    Web3RPCError,
)
from web3.types import TxReceipt as Web3TxReceipt

from .address import parse_address
from .chains import DEFAULT_REGISTRY, ChainRegistry
from .config import NetworkConfig
from .exceptions import (
    ExecutionError,
    NetworkError,
    NotFoundError,
    RevertedError,
    TransportError,
    UnsupportedTransactionTypeError,
)
from .models import AccountSnapshot, CallInvocation, TransactionRecord, TxReceipt
from .signer import select_scheme
from .transaction import SUPPORTED_TX_TYPES, Transaction
from .types import TxState

# Type variable for improved type hinting
T = TypeVar('T')

# Node error messages that report a failed EVM execution rather than a
# failed request. Code -32000 alone is not enough: geth also uses it for
# lookups such as "header not found".
EXECUTION_ERROR_MARKERS = (
    "execution",
    "revert",
    "out of gas",
    "invalid opcode",
    "invalid jump",
    "stack underflow",
    "stack overflow",
)


def _is_execution_error(error: Dict[str, Any]) -> bool:
    """Whether a JSON-RPC error object reports a failed EVM execution."""
    if error.get("code") == 3:
        return True
    message = str(error.get("message") or "").lower()
    return any(marker in message for marker in EXECUTION_ERROR_MARKERS)


class EthClient:
    """
    Chain-agnostic transaction, account and contract API over an Ethereum node.

    Every method is a short, stateless sequence of RPC round-trips. Each takes
    an optional ``cancel`` event; once it is set the next round-trip boundary
    raises :class:`TransportError`, and the result of a query that was in
    flight when it fired is discarded.

    No retries are performed here. The HTTP provider is created with its own
    retry handling disabled so that every call maps to exactly one request.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 30,
        expected_chain_id: Optional[int] = None,
        registry: Optional[ChainRegistry] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the EthClient

        Args:
            rpc_url: Ethereum RPC endpoint URL
            timeout: Timeout for each RPC request in seconds
            expected_chain_id: Chain id the node is expected to report
            registry: Chain registry used for signer selection
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.hostname or ''
        is_local = host in ('localhost', '127.0.0.1')
        if parsed.scheme != 'https' and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")

        self.rpc_url = rpc_url
        self.timeout = timeout
        self.expected_chain_id = expected_chain_id
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.logger = logger or logging.getLogger(__name__)
        self._network_name: Optional[str] = None

        self.w3 = Web3(Web3.HTTPProvider(
            rpc_url,
            request_kwargs={"timeout": timeout},
            exception_retry_configuration=None,
        ))

    @classmethod
    def from_network(
        cls,
        network: str,
        rpc_url: Optional[str] = None,
        **kwargs: Any
    ) -> "EthClient":
        """
        Create a client for a named network from the packaged network table.

        Args:
            network: Network name (e.g. "sepolia")
            rpc_url: Optional RPC URL override
            **kwargs: Passed through to the constructor

        Raises:
            NetworkError: If the network is unknown
        """
        url = NetworkConfig.get_rpc_url(network, override=rpc_url)
        kwargs.setdefault("expected_chain_id", NetworkConfig.get_chain_id(network))
        client = cls(url, **kwargs)
        client._network_name = network
        return client

    def assert_chain_id(self, cancel: Optional[threading.Event] = None) -> None:
        """
        Verify that the node serves the expected chain.

        Raises:
            NetworkError: If the chain id differs or cannot be read
        """
        if self.expected_chain_id is None:
            self.logger.warning("No expected chain ID set, skipping chain ID validation")
            return

        try:
            actual = self.chain_id(cancel=cancel)
        except TransportError as e:
            raise NetworkError(f"Failed to validate chain ID: {e}") from e

        if actual != self.expected_chain_id:
            network = self._network_name or "configured network"
            raise NetworkError(
                f"Chain ID mismatch for {network}: expected {self.expected_chain_id}, got {actual}"
            )

    def chain_id(self, cancel: Optional[threading.Event] = None) -> int:
        """Chain id reported by the node."""
        return int(self._rpc("fetching chain ID", lambda: self.w3.eth.chain_id, cancel))

    def latest_block(self, cancel: Optional[threading.Event] = None) -> int:
        """Block number at the current chain head."""
        header = self._rpc("fetching header", lambda: self.w3.eth.get_block("latest"), cancel)
        return int(header["number"])

    def resolve_transaction(
        self,
        tx_hash: Union[str, bytes],
        cancel: Optional[threading.Event] = None
    ) -> TransactionRecord:
        """
        Resolve the lifecycle state of a transaction.

        Args:
            tx_hash: 32-byte transaction hash, raw or 0x-prefixed hex
            cancel: Optional cancellation event

        Returns:
            A pending record (depth 0) or a confirmed record with its
            confirmation depth and the signer of its inclusion era

        Raises:
            NotFoundError: If the node does not know the transaction
            RevertedError: If the transaction was included but failed
            TransportError: If any query fails or the call is cancelled
            ValueError: If ``tx_hash`` is not a 32-byte hash
        """
        tx_id = self._normalize_tx_hash(tx_hash)

        try:
            tx_data = self._rpc(
                f"fetching tx by hash '{tx_id}'",
                lambda: self.w3.eth.get_transaction(tx_id),
                cancel,
            )
        except TransactionNotFound:
            raise NotFoundError(tx_id) from None
        if tx_data is None:
            raise NotFoundError(tx_id)

        chain_id = self.chain_id(cancel=cancel)

        if tx_data.get("blockNumber") is None:
            self.logger.debug(f"Transaction {tx_id} is pending")
            return self._pending_record(tx_id, tx_data, chain_id)

        try:
            raw_receipt = self._rpc(
                f"fetching receipt for tx {tx_id}",
                lambda: self.w3.eth.get_transaction_receipt(tx_id),
                cancel,
            )
        except (TransactionNotFound, TransactionIndexingInProgress):
            raw_receipt = None

        # Seen by the node but not yet receipt-indexed
        if raw_receipt is None:
            self.logger.debug(f"No receipt for transaction {tx_id}, treating as pending")
            return self._pending_record(tx_id, tx_data, chain_id)

        receipt = self._convert_receipt(raw_receipt)
        if not receipt.succeeded:
            self.logger.debug(f"Transaction {tx_id} reverted in block {receipt.block_number}")
            raise RevertedError(tx_id, receipt.block_number)

        signer = select_scheme(chain_id, receipt.block_number, self.registry)
        head = self.latest_block(cancel=cancel)

        confirmations = head - receipt.block_number
        if confirmations < 0:
            self.logger.warning(
                f"Head {head} is behind inclusion block {receipt.block_number} for {tx_id}, "
                f"reporting 0 confirmations"
            )
            confirmations = 0

        return TransactionRecord(
            tx_hash=tx_id,
            transaction=Transaction.from_rpc(tx_data, signer),
            signer=signer,
            state=TxState.CONFIRMED,
            confirmations=confirmations,
            block_number=receipt.block_number,
        )

    def submit_transaction(
        self,
        tx: Any,
        cancel: Optional[threading.Event] = None
    ) -> bytes:
        """
        Broadcast a transaction built by this SDK.

        Args:
            tx: A :class:`Transaction`
            cancel: Optional cancellation event

        Returns:
            The transaction hash

        Raises:
            UnsupportedTransactionTypeError: If ``tx`` is not a broadcastable Transaction
            TransportError: If the node rejects the transaction or the call fails
        """
        if type(tx) is not Transaction:
            raise UnsupportedTransactionTypeError(
                f"expected type {Transaction.__name__}, got type {type(tx).__name__}",
                received=tx,
            )
        if tx.tx_type not in SUPPORTED_TX_TYPES:
            raise UnsupportedTransactionTypeError(
                f"transaction type {tx.tx_type} cannot be broadcast",
                received=tx,
            )

        raw = tx.encode()
        tx_id = "0x" + tx.hash.hex()
        self._rpc(
            f"sending transaction '{tx_id}'",
            lambda: self.w3.eth.send_raw_transaction(raw),
            cancel,
        )
        self.logger.info(f"Transaction sent: {tx_id}")
        return tx.hash

    def account_nonce(self, address: Any, cancel: Optional[threading.Event] = None) -> int:
        """
        Current nonce of an account, i.e. the nonce for its next transaction.

        Raises:
            InvalidAddressError: If the address cannot be parsed (no query is made)
            TransportError: If the query fails
        """
        target = parse_address(address)
        return int(self._rpc(
            f"getting nonce for '{target}'",
            lambda: self.w3.eth.get_transaction_count(target, "latest"),
            cancel,
        ))

    def account_balance(self, address: Any, cancel: Optional[threading.Event] = None) -> int:
        """
        Current balance of an account in wei.

        Raises:
            InvalidAddressError: If the address cannot be parsed (no query is made)
            TransportError: If the query fails
        """
        target = parse_address(address)
        return int(self._rpc(
            f"getting balance for '{target}'",
            lambda: self.w3.eth.get_balance(target, "latest"),
            cancel,
        ))

    def account_snapshot(self, address: Any, cancel: Optional[threading.Event] = None) -> AccountSnapshot:
        """Nonce and balance of an account, read one after the other."""
        target = parse_address(address)
        return AccountSnapshot(
            address=target,
            nonce=self.account_nonce(target, cancel=cancel),
            balance=self.account_balance(target, cancel=cancel),
        )

    def call_contract(
        self,
        address: Any,
        call_data: Union[bytes, str],
        cancel: Optional[threading.Event] = None
    ) -> bytes:
        """
        Evaluate a read-only contract call at the current chain head.

        Args:
            address: Contract address
            call_data: ABI-encoded call data, raw or hex
            cancel: Optional cancellation event

        Returns:
            Raw return data

        Raises:
            InvalidAddressError: If the address cannot be parsed (no query is made)
            ExecutionError: If the call reverts or the EVM execution fails
                (out of gas, invalid opcode, ...)
            TransportError: If the query fails
        """
        target = parse_address(address)
        invocation = CallInvocation(to=target, data=bytes(HexBytes(call_data)))
        description = f"calling contract '{target}'"
        try:
            result = self._rpc(
                description,
                lambda: self.w3.eth.call(invocation.to_call_params(), "latest"),
                cancel,
                reraise=(Web3RPCError,),
            )
        except ContractLogicError as e:
            data = getattr(e, "data", None)
            raise ExecutionError(
                f"call to '{target}' reverted: {e}",
                data=data if isinstance(data, str) else None,
            ) from e
        except Web3RPCError as e:
            error = (e.rpc_response or {}).get("error")
            if not isinstance(error, dict) or not _is_execution_error(error):
                self.logger.error(f"{description} failed: {e}")
                raise TransportError(f"{description}: {e}") from e
            data = error.get("data")
            raise ExecutionError(
                f"call to '{target}' failed: {error.get('message')}",
                data=data if isinstance(data, str) else None,
            ) from e
        return bytes(result)

    def _rpc(
        self,
        description: str,
        call: Callable[[], T],
        cancel: Optional[threading.Event] = None,
        reraise: Tuple[Type[BaseException], ...] = (),
    ) -> T:
        """
        Run one node round-trip, translating failures into SDK errors.

        Lookup misses (``TransactionNotFound``, ``TransactionIndexingInProgress``),
        ``ContractLogicError`` and any ``reraise`` types are re-raised for the
        caller to interpret; everything else becomes a TransportError.
        """
        self._check_cancelled(description, cancel)
        self.logger.debug(f"RPC: {description}")
        try:
            result = call()
        except (TransactionNotFound, TransactionIndexingInProgress, ContractLogicError) + reraise:
            self._check_cancelled(description, cancel)
            raise
        except (Web3Exception, requests.RequestException, OSError, ValueError) as e:
            self._check_cancelled(description, cancel)
            self.logger.error(f"{description} failed: {e}")
            raise TransportError(f"{description}: {e}") from e
        self._check_cancelled(description, cancel)
        return result

    def _check_cancelled(self, description: str, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise TransportError(f"{description}: cancelled", cancelled=True)

    def _pending_record(self, tx_id: str, tx_data: Any, chain_id: int) -> TransactionRecord:
        signer = select_scheme(chain_id, None, self.registry)
        return TransactionRecord(
            tx_hash=tx_id,
            transaction=Transaction.from_rpc(tx_data, signer),
            signer=signer,
            state=TxState.PENDING,
            confirmations=0,
        )

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model

        Args:
            web3_receipt: The Web3 transaction receipt

        Returns:
            Our TxReceipt model
        """
        receipt_dict: Dict[str, Any] = dict(web3_receipt)

        # Convert bytes to hex strings
        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = '0x' + bytes(value).hex()
        receipt_dict["logs"] = [dict(log) for log in receipt_dict.get("logs") or []]

        return TxReceipt.model_validate(receipt_dict)

    @staticmethod
    def _normalize_tx_hash(tx_hash: Union[str, bytes]) -> str:
        if isinstance(tx_hash, (bytes, bytearray)):
            raw = bytes(tx_hash)
        elif isinstance(tx_hash, str):
            body = tx_hash[2:] if tx_hash[:2] in ("0x", "0X") else tx_hash
            try:
                raw = bytes.fromhex(body)
            except ValueError:
                raise ValueError(f"transaction hash is not hex: {tx_hash!r}") from None
        else:
            raise ValueError(f"unsupported transaction hash type {type(tx_hash).__name__}")
        if len(raw) != 32:
            raise ValueError(f"transaction hash must be 32 bytes, got {len(raw)}")
        return "0x" + raw.hex()
