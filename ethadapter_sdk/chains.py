"""
Chain identity registry.

Maps a numeric chain id to a named network and the block heights at which
its transaction signing rules changed. The table is plain data: adding a
network or a fork is a new entry, not a new code path.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple

from .exceptions import UnknownChainError
from .types import SignerKind


@dataclass(frozen=True)
class Era:
    """Signing rules active from block ``start`` onwards."""
    start: int
    kind: SignerKind


@dataclass(frozen=True)
class ChainInfo:
    """
    A known network and its eras.

    Attributes:
        name: Human readable network name
        chain_id: EIP-155 chain id
        eras: Eras ordered by ascending start height
    """
    name: str
    chain_id: int
    eras: Tuple[Era, ...]

    def __post_init__(self) -> None:
        if not self.eras:
            raise ValueError(f"chain {self.chain_id} must declare at least one era")
        starts = [era.start for era in self.eras]
        if starts != sorted(starts) or len(set(starts)) != len(starts):
            raise ValueError(f"eras for chain {self.chain_id} must have strictly ascending starts")
        if starts[0] < 0:
            raise ValueError(f"era start for chain {self.chain_id} must be non-negative")


def _eras(*pairs: Tuple[int, SignerKind]) -> Tuple[Era, ...]:
    return tuple(Era(start, kind) for start, kind in pairs)


# Fork heights from the public chain configurations
_KNOWN_CHAINS: Tuple[ChainInfo, ...] = (
    ChainInfo("yolo-v3", 0, _eras((0, SignerKind.EIP2930))),
    ChainInfo("mainnet", 1, _eras(
        (0, SignerKind.FRONTIER),
        (1_150_000, SignerKind.HOMESTEAD),
        (2_675_000, SignerKind.EIP155),
        (12_244_000, SignerKind.EIP2930),
        (12_965_000, SignerKind.LONDON),
    )),
    ChainInfo("ropsten", 3, _eras(
        (0, SignerKind.HOMESTEAD),
        (10, SignerKind.EIP155),
        (9_812_189, SignerKind.EIP2930),
        (10_499_401, SignerKind.LONDON),
    )),
    ChainInfo("rinkeby", 4, _eras(
        (0, SignerKind.FRONTIER),
        (1, SignerKind.HOMESTEAD),
        (3, SignerKind.EIP155),
        (8_290_928, SignerKind.EIP2930),
        (8_897_988, SignerKind.LONDON),
    )),
    ChainInfo("goerli", 5, _eras(
        (0, SignerKind.EIP155),
        (4_460_644, SignerKind.EIP2930),
        (5_062_605, SignerKind.LONDON),
    )),
    ChainInfo("holesky", 17000, _eras((0, SignerKind.LONDON))),
    ChainInfo("sepolia", 11155111, _eras((0, SignerKind.LONDON))),
)


class ChainRegistry:
    """
    Immutable lookup table from chain id to :class:`ChainInfo`.

    Use :meth:`register` to derive a registry with extra networks.
    """

    def __init__(self, chains: Iterable[ChainInfo] = ()):
        table: Dict[int, ChainInfo] = {}
        for info in chains:
            table[info.chain_id] = info
        self._chains: Mapping[int, ChainInfo] = table

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._chains

    def __len__(self) -> int:
        return len(self._chains)

    def chain_ids(self) -> Tuple[int, ...]:
        return tuple(sorted(self._chains))

    def get(self, chain_id: int) -> ChainInfo:
        """
        Get the registered network for a chain id.

        Raises:
            UnknownChainError: If the chain id is not registered
        """
        try:
            return self._chains[chain_id]
        except KeyError:
            raise UnknownChainError(chain_id) from None

    def resolve(self, chain_id: int) -> Tuple[Era, ...]:
        """
        Get the eras for a chain id, ordered by ascending start height.

        Raises:
            UnknownChainError: If the chain id is not registered
        """
        return self.get(chain_id).eras

    def name(self, chain_id: int) -> str:
        return self.get(chain_id).name

    def register(self, info: ChainInfo) -> "ChainRegistry":
        """Return a new registry containing ``info``, replacing any entry with the same id."""
        return ChainRegistry([*self._chains.values(), info])


DEFAULT_REGISTRY = ChainRegistry(_KNOWN_CHAINS)
