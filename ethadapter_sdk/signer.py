"""
Signer scheme selection and signing digests.

A signer scheme is the rule set for turning a transaction into the digest its
signature covers. Which scheme applies is a protocol fact: it depends on the
chain and on the era in which the transaction was included, not on when it is
observed.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet, Optional

import rlp
from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_utils import keccak

from .chains import DEFAULT_REGISTRY, ChainRegistry
from .exceptions import SignerMismatchError, UnknownChainError
from .types import SignerKind

if TYPE_CHECKING:
    from .transaction import Transaction

logger = logging.getLogger(__name__)

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_KIND_ORDER = tuple(SignerKind)

_ACCEPTED_TYPES = {
    SignerKind.FRONTIER: frozenset({0}),
    SignerKind.HOMESTEAD: frozenset({0}),
    SignerKind.EIP155: frozenset({0}),
    SignerKind.EIP2930: frozenset({0, 1}),
    SignerKind.LONDON: frozenset({0, 1, 2}),
}


def _rank(kind: SignerKind) -> int:
    return _KIND_ORDER.index(kind)


@dataclass(frozen=True)
class SignerScheme:
    """
    Tagged signer variant.

    Attributes:
        kind: Which protocol rules compute the digest
        chain_id: Chain id used for replay protection
    """
    kind: SignerKind
    chain_id: Optional[int] = None

    def __post_init__(self) -> None:
        if _rank(self.kind) >= _rank(SignerKind.EIP155) and self.chain_id is None:
            raise ValueError(f"{self.kind.value} signer requires a chain id")
        if self.chain_id is not None and self.chain_id < 0:
            raise ValueError("chain id must be non-negative")

    @property
    def accepted_types(self) -> FrozenSet[int]:
        return _ACCEPTED_TYPES[self.kind]

    def accepts(self, tx: "Transaction") -> bool:
        """Whether this scheme can interpret ``tx`` at all."""
        if tx.tx_type not in self.accepted_types:
            return False
        if tx.protected and _rank(self.kind) < _rank(SignerKind.EIP155):
            return False
        return True

    def sighash(self, tx: "Transaction") -> bytes:
        """
        Compute the digest the transaction signature covers.

        Raises:
            SignerMismatchError: If the transaction type, replay protection
                or chain id is incompatible with this scheme
        """
        if tx.tx_type not in self.accepted_types:
            raise SignerMismatchError(
                f"{self.kind.value} signer does not support transaction type {tx.tx_type}",
                kind=self.kind.value,
            )

        items = tx.payload_items(signed=False)
        if tx.tx_type != 0:
            self._check_chain_id(tx)
            return keccak(bytes([tx.tx_type]) + rlp.encode(items))

        if tx.protected:
            if _rank(self.kind) < _rank(SignerKind.EIP155):
                raise SignerMismatchError(
                    f"{self.kind.value} signer cannot handle replay-protected transactions",
                    kind=self.kind.value,
                )
            self._check_chain_id(tx)
            items = items + [self.chain_id, 0, 0]
        return keccak(rlp.encode(items))

    def sender(self, tx: "Transaction") -> str:
        """
        Recover the checksummed sender address of a signed transaction.

        Raises:
            SignerMismatchError: If the signature cannot be interpreted under this scheme
        """
        digest = self.sighash(tx)
        v, r, s = tx.signature
        if tx.tx_type == 0:
            if tx.protected:
                recovery = v - 35 - 2 * (tx.chain_id or 0)
            else:
                recovery = v - 27 if v >= 27 else v
        else:
            recovery = v

        if recovery not in (0, 1):
            raise SignerMismatchError(f"invalid signature recovery id {recovery}", kind=self.kind.value)
        if not (0 < r < SECP256K1_N and 0 < s < SECP256K1_N):
            raise SignerMismatchError("signature values out of range", kind=self.kind.value)
        # Homestead made high-s signatures invalid
        if self.kind != SignerKind.FRONTIER and s > SECP256K1_N // 2:
            raise SignerMismatchError("high-s signature rejected", kind=self.kind.value)

        try:
            public_key = keys.Signature(vrs=(recovery, r, s)).recover_public_key_from_msg_hash(digest)
        except BadSignature as e:
            raise SignerMismatchError(f"cannot recover sender: {e}", kind=self.kind.value) from e
        return public_key.to_checksum_address()

    def _check_chain_id(self, tx: "Transaction") -> None:
        if tx.chain_id != self.chain_id:
            raise SignerMismatchError(
                f"transaction chain id {tx.chain_id} does not match signer chain id {self.chain_id}",
                kind=self.kind.value,
            )


def latest_scheme(chain_id: int) -> SignerScheme:
    """The newest signer scheme, parameterized only by chain id."""
    return SignerScheme(SignerKind.LONDON, chain_id)


def select_scheme(
    chain_id: int,
    block_number: Optional[int] = None,
    registry: Optional[ChainRegistry] = None,
) -> SignerScheme:
    """
    Select the signer scheme for a transaction.

    Args:
        chain_id: Chain id reported by the node
        block_number: Inclusion height, or None for a transaction not yet included
        registry: Chain registry to consult (defaults to the built-in table)

    Returns:
        The EIP-155 scheme for pending transactions; otherwise the scheme of the
        era active at ``block_number``, or the latest scheme when the chain is
        not registered.
    """
    if block_number is None:
        return SignerScheme(SignerKind.EIP155, chain_id)
    if block_number < 0:
        raise ValueError(f"block number must be non-negative, got {block_number}")

    if registry is None:
        registry = DEFAULT_REGISTRY
    try:
        eras = registry.resolve(chain_id)
    except UnknownChainError:
        logger.debug(f"Chain {chain_id} not registered, using latest signer")
        return latest_scheme(chain_id)

    selected = eras[0]
    for era in eras:
        if era.start > block_number:
            break
        selected = era
    return SignerScheme(selected.kind, chain_id)
