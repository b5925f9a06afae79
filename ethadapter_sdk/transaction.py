"""
Chain-native transaction representation and construction.

:class:`Transaction` is the only transaction variant the client broadcasts.
It is produced from node data, from raw signed bytes, or by :class:`TxBuilder`.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import rlp
from eth_account import Account
from eth_utils import big_endian_to_int, keccak, to_bytes

from .address import address_bytes, format_address, parse_address
from .signer import SignerScheme, latest_scheme, select_scheme

logger = logging.getLogger(__name__)

LEGACY_TX_TYPE = 0
ACCESS_LIST_TX_TYPE = 1
DYNAMIC_FEE_TX_TYPE = 2

SUPPORTED_TX_TYPES = (LEGACY_TX_TYPE, ACCESS_LIST_TX_TYPE, DYNAMIC_FEE_TX_TYPE)

AccessList = Tuple[Tuple[bytes, Tuple[bytes, ...]], ...]


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise TypeError("boolean is not a valid integer field")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return big_endian_to_int(bytes(value))
    if isinstance(value, str):
        return int(value, 16) if value[:2] in ("0x", "0X") else int(value)
    raise TypeError(f"cannot convert {type(value).__name__} to int")


def _to_raw_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


def _normalize_access_list(entries: Any) -> AccessList:
    normalized = []
    for entry in entries or ():
        if isinstance(entry, Mapping):
            address = entry["address"]
            storage_keys = entry.get("storageKeys", ())
        else:
            address, storage_keys = entry
        normalized.append((
            address_bytes(address),
            tuple(_to_raw_bytes(key) for key in storage_keys),
        ))
    return tuple(normalized)


class Transaction:
    """
    An Ethereum transaction together with the signer scheme that interprets it.

    The field mapping is normalized to native types: integers for quantities,
    bytes for ``to``/``data``, and a tuple-based access list. Other types
    (e.g. blob or rollup deposit transactions) can be held as reported by the
    node, with or without a chain id, but cannot be encoded, hashed or broadcast.
    """

    def __init__(self, fields: Mapping[str, Any], signer: SignerScheme):
        tx_type = _to_int(fields.get("type", LEGACY_TX_TYPE))
        to = fields.get("to")
        self._fields: Dict[str, Any] = {
            "type": tx_type,
            "chain_id": None if fields.get("chain_id") is None else _to_int(fields["chain_id"]),
            "nonce": _to_int(fields.get("nonce")),
            "gas_price": _to_int(fields.get("gas_price")),
            "max_priority_fee_per_gas": _to_int(fields.get("max_priority_fee_per_gas")),
            "max_fee_per_gas": _to_int(fields.get("max_fee_per_gas")),
            "gas": _to_int(fields.get("gas")),
            "to": address_bytes(to) if to not in (None, b"", "") else None,
            "value": _to_int(fields.get("value")),
            "data": _to_raw_bytes(fields.get("data")),
            "access_list": _normalize_access_list(fields.get("access_list")),
            "v": _to_int(fields.get("v")),
            "r": _to_int(fields.get("r")),
            "s": _to_int(fields.get("s")),
        }
        if tx_type in (ACCESS_LIST_TX_TYPE, DYNAMIC_FEE_TX_TYPE) and self._fields["chain_id"] is None:
            raise ValueError(f"type {tx_type} transaction requires a chain id")
        self._signer = signer

    @classmethod
    def from_rpc(cls, tx_data: Mapping[str, Any], signer: SignerScheme) -> "Transaction":
        """
        Build a transaction from an ``eth_getTransactionByHash`` result.

        Args:
            tx_data: Transaction object as returned by web3
            signer: Scheme to attach
        """
        tx_type = _to_int(tx_data.get("type", LEGACY_TX_TYPE))
        v = tx_data.get("v")
        if tx_type != LEGACY_TX_TYPE and tx_data.get("yParity") is not None:
            v = tx_data["yParity"]
        return cls({
            "type": tx_type,
            "chain_id": tx_data.get("chainId") if tx_type != LEGACY_TX_TYPE else None,
            "nonce": tx_data.get("nonce"),
            "gas_price": tx_data.get("gasPrice"),
            "max_priority_fee_per_gas": tx_data.get("maxPriorityFeePerGas"),
            "max_fee_per_gas": tx_data.get("maxFeePerGas"),
            "gas": tx_data.get("gas"),
            "to": tx_data.get("to"),
            "value": tx_data.get("value"),
            "data": tx_data.get("input", tx_data.get("data")),
            "access_list": tx_data.get("accessList"),
            "v": v,
            "r": tx_data.get("r"),
            "s": tx_data.get("s"),
        }, signer)

    @classmethod
    def from_raw(cls, raw: bytes, signer: SignerScheme) -> "Transaction":
        """
        Decode a signed transaction in its EIP-2718 envelope.

        Raises:
            ValueError: If the bytes are not a supported signed transaction
        """
        raw = bytes(raw)
        if not raw:
            raise ValueError("empty transaction payload")

        if raw[0] >= 0xC0:
            tx_type, items = LEGACY_TX_TYPE, rlp.decode(raw)
        elif raw[0] in (ACCESS_LIST_TX_TYPE, DYNAMIC_FEE_TX_TYPE):
            tx_type, items = raw[0], rlp.decode(raw[1:])
        else:
            raise ValueError(f"transaction type {raw[0]} is not supported")

        expected = {LEGACY_TX_TYPE: 9, ACCESS_LIST_TX_TYPE: 11, DYNAMIC_FEE_TX_TYPE: 12}[tx_type]
        if len(items) != expected:
            raise ValueError(f"type {tx_type} transaction must have {expected} fields, got {len(items)}")

        if tx_type == LEGACY_TX_TYPE:
            nonce, gas_price, gas, to, value, data, v, r, s = items
            fields = {"gas_price": gas_price}
        elif tx_type == ACCESS_LIST_TX_TYPE:
            chain_id, nonce, gas_price, gas, to, value, data, access_list, v, r, s = items
            fields = {"chain_id": chain_id, "gas_price": gas_price, "access_list": access_list}
        else:
            (chain_id, nonce, max_priority, max_fee, gas, to, value, data,
             access_list, v, r, s) = items
            fields = {
                "chain_id": chain_id,
                "max_priority_fee_per_gas": max_priority,
                "max_fee_per_gas": max_fee,
                "access_list": access_list,
            }

        fields.update({
            "type": tx_type,
            "nonce": nonce,
            "gas": gas,
            "to": to or None,
            "value": value,
            "data": data,
            "v": v,
            "r": r,
            "s": s,
        })
        return cls(fields, signer)

    @property
    def signer(self) -> SignerScheme:
        return self._signer

    def with_signer(self, signer: SignerScheme) -> "Transaction":
        return Transaction(self._fields, signer)

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self._fields)

    @property
    def tx_type(self) -> int:
        return self._fields["type"]

    @property
    def protected(self) -> bool:
        """Whether the signature commits to a chain id."""
        if self.tx_type != LEGACY_TX_TYPE:
            return True
        return self._fields["v"] not in (0, 1, 27, 28)

    @property
    def chain_id(self) -> Optional[int]:
        """Chain id the transaction is bound to, or None for unprotected legacy transactions."""
        if self.tx_type != LEGACY_TX_TYPE:
            return self._fields["chain_id"]
        if not self.protected:
            return None
        return (self._fields["v"] - 35) // 2

    @property
    def nonce(self) -> int:
        return self._fields["nonce"]

    @property
    def to(self) -> Optional[str]:
        to = self._fields["to"]
        return format_address(to) if to is not None else None

    @property
    def value(self) -> int:
        return self._fields["value"]

    @property
    def data(self) -> bytes:
        return self._fields["data"]

    @property
    def signature(self) -> Tuple[int, int, int]:
        return self._fields["v"], self._fields["r"], self._fields["s"]

    def payload_items(self, signed: bool = True) -> List[Any]:
        """RLP items of the transaction body, with or without the signature."""
        f = self._fields
        to = f["to"] or b""
        access_list = [[address, list(keys)] for address, keys in f["access_list"]]

        if self.tx_type == LEGACY_TX_TYPE:
            items = [f["nonce"], f["gas_price"], f["gas"], to, f["value"], f["data"]]
        elif self.tx_type == ACCESS_LIST_TX_TYPE:
            items = [f["chain_id"], f["nonce"], f["gas_price"], f["gas"], to,
                     f["value"], f["data"], access_list]
        elif self.tx_type == DYNAMIC_FEE_TX_TYPE:
            items = [f["chain_id"], f["nonce"], f["max_priority_fee_per_gas"],
                     f["max_fee_per_gas"], f["gas"], to, f["value"], f["data"], access_list]
        else:
            raise ValueError(f"transaction type {self.tx_type} cannot be encoded")

        if signed:
            items += [f["v"], f["r"], f["s"]]
        return items

    def encode(self) -> bytes:
        """Canonical signed encoding, as broadcast with ``eth_sendRawTransaction``."""
        body = rlp.encode(self.payload_items(signed=True))
        if self.tx_type == LEGACY_TX_TYPE:
            return body
        return bytes([self.tx_type]) + body

    @property
    def hash(self) -> bytes:
        return keccak(self.encode())

    def sighash(self) -> bytes:
        return self._signer.sighash(self)

    def sender(self) -> str:
        return self._signer.sender(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self._fields == other._fields and self._signer == other._signer

    def __hash__(self) -> int:
        return hash((self.tx_type, self.nonce, self.signature))

    def __repr__(self) -> str:
        if self.tx_type not in SUPPORTED_TX_TYPES:
            return f"Transaction(type={self.tx_type}, nonce={self.nonce}, signer={self._signer.kind.value})"
        return f"Transaction(type={self.tx_type}, hash=0x{self.hash.hex()}, signer={self._signer.kind.value})"


class TxBuilder:
    """
    Builds and signs transactions for one chain.

    Legacy transactions are signed under EIP-155; dynamic-fee transactions
    under the latest scheme for the chain.
    """

    def __init__(self, chain_id: int, logger: Optional[logging.Logger] = None):
        self.chain_id = chain_id
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_client(cls, client: Any, cancel: Any = None) -> "TxBuilder":
        """Create a builder for the chain the client's node reports."""
        return cls(client.chain_id(cancel=cancel), logger=client.logger)

    def build_tx(
        self,
        to: Optional[Any],
        value: int,
        nonce: int,
        gas_limit: int,
        gas_price: Optional[int] = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
        data: bytes = b"",
    ) -> Dict[str, Any]:
        """
        Build an unsigned transaction dictionary.

        Args:
            to: Recipient address, or None for contract creation
            value: Amount in wei
            nonce: Sender nonce
            gas_limit: Gas limit
            gas_price: Gas price for a legacy transaction
            max_fee_per_gas: Fee cap for a dynamic-fee transaction
            max_priority_fee_per_gas: Tip cap for a dynamic-fee transaction
            data: Call data

        Returns:
            Transaction dictionary accepted by ``eth_account``

        Raises:
            ValueError: If the fee fields are missing or mix both models
            InvalidAddressError: If ``to`` is malformed
        """
        dynamic = max_fee_per_gas is not None or max_priority_fee_per_gas is not None
        if gas_price is not None and dynamic:
            raise ValueError("gas_price cannot be combined with dynamic fee fields")
        if gas_price is None and not dynamic:
            raise ValueError("either gas_price or max_fee_per_gas/max_priority_fee_per_gas is required")
        if dynamic and (max_fee_per_gas is None or max_priority_fee_per_gas is None):
            raise ValueError("max_fee_per_gas and max_priority_fee_per_gas must be given together")
        for name, amount in (("value", value), ("nonce", nonce), ("gas_limit", gas_limit)):
            if amount < 0:
                raise ValueError(f"{name} must be non-negative")

        tx: Dict[str, Any] = {
            "chainId": self.chain_id,
            "nonce": nonce,
            "gas": gas_limit,
            "value": value,
            "data": "0x" + bytes(data).hex(),
        }
        if to is not None:
            tx["to"] = parse_address(to)
        if dynamic:
            tx["type"] = DYNAMIC_FEE_TX_TYPE
            tx["maxFeePerGas"] = max_fee_per_gas
            tx["maxPriorityFeePerGas"] = max_priority_fee_per_gas
        else:
            tx["gasPrice"] = gas_price
        return tx

    def sign(self, tx_params: Dict[str, Any], private_key: Any) -> Transaction:
        """
        Sign a transaction dictionary and wrap the result.

        Args:
            tx_params: Output of :meth:`build_tx`
            private_key: Key accepted by ``eth_account.Account.from_key``
        """
        account = Account.from_key(private_key)
        signed = account.sign_transaction(tx_params)
        if _to_int(tx_params.get("type", LEGACY_TX_TYPE)) == LEGACY_TX_TYPE:
            scheme = select_scheme(self.chain_id)
        else:
            scheme = latest_scheme(self.chain_id)
        tx = Transaction.from_raw(bytes(signed.raw_transaction), scheme)
        self.logger.debug(f"Signed transaction 0x{tx.hash.hex()} from {account.address}")
        return tx
