"""
Vault Registry
Single source of truth for vault addresses, strategies and metadata.

Each vault carries an explicit RangeProtocol tag. The tag is resolved once,
when the registry is built, from the protocol marker in the display name.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

from ..infrastructure.errors import ConfigurationError
from ..normalization import normalize_address

logger = logging.getLogger("VaultRegistry")


class RangeProtocol(str, Enum):
    """AMM family backing a vault's liquidity position"""
    METROPOLIS = "metropolis"   # active-bin (Liquidity Book) style
    SHADOW = "shadow"           # tick (concentrated liquidity) style
    UNSUPPORTED = "unsupported"


# Display-name markers, checked in order
PROTOCOL_MARKERS = {
    "Metropolis": RangeProtocol.METROPOLIS,
    "Shadow": RangeProtocol.SHADOW,
}

# Decimals are protocol-defined per token, not inferred from chain
TOKEN_DECIMALS = {
    "S": 18,
    "WS": 18,
    "WETH": 18,
    "USDC": 6,
}


def resolve_protocol(name: str) -> RangeProtocol:
    """Map a vault display name to its protocol family."""
    for marker, protocol in PROTOCOL_MARKERS.items():
        if marker in (name or ""):
            return protocol
    return RangeProtocol.UNSUPPORTED


@dataclass(frozen=True)
class VaultIdentity:
    name: str
    vault_address: str
    strategy_address: str
    protocol: RangeProtocol = RangeProtocol.UNSUPPORTED
    pool_address: Optional[str] = None       # Shadow CL pool
    book_address: Optional[str] = None       # Metropolis LB book
    rewards_address: Optional[str] = None
    defillama_pool_id: Optional[str] = None
    token_x: str = "S"
    token_y: str = "USDC"
    tier: str = "Premium"

    @classmethod
    def create(cls, name: str, vault_address: str, strategy_address: str, **kwargs) -> "VaultIdentity":
        """Build an identity, tagging the protocol from the display name."""
        protocol = kwargs.pop("protocol", None) or resolve_protocol(name)
        return cls(
            name=name,
            vault_address=vault_address,
            strategy_address=strategy_address,
            protocol=protocol,
            **kwargs
        )

    @property
    def decimals_x(self) -> int:
        return TOKEN_DECIMALS.get(self.token_x.upper(), 18)

    @property
    def decimals_y(self) -> int:
        return TOKEN_DECIMALS.get(self.token_y.upper(), 18)


DEFAULT_VAULTS: List[VaultIdentity] = [
    # Metropolis Vaults
    VaultIdentity.create(
        name="S • USDC | Metropolis",
        vault_address="0xF5708969da13879d7A6D2F21d0411BF9eEB045E9",
        strategy_address="0x20302bc08CcaAFB039916e4a06f0B3917506019a",
        book_address="0x32c0D87389E72E46b54bc4Ea6310C1a0e921C4DC",
        token_x="S",
        token_y="USDC",
    ),

    # Shadow Vaults
    VaultIdentity.create(
        name="wS • USDC | Shadow",
        vault_address="0x727e6D1FF1f1836Bb7Cdfad30e89EdBbef878ab5",
        strategy_address="0x64efeA2531f2b1A3569555084B88bb5714f5286c",
        pool_address="0x324963c267C354c7660Ce8CA3F5f167E05649970",
        rewards_address="0xe879d0E44e6873cf4ab71686055a4f6817685f02",
        defillama_pool_id="bfb130df-7dd3-4f19-a54c-305c8cb6c9f0",
        token_x="WS",
        token_y="USDC",
    ),
    VaultIdentity.create(
        name="WS • WETH | Shadow",
        vault_address="0xB6a8129779E57845588Db74435A9aFAE509e1454",
        strategy_address="0x58c244BE630753e8E668f18C0F2Cffe3ea0E8126",
        pool_address="0xb6d9b069f6b96a507243d501d1a23b3fccfc85d3",
        rewards_address="0xf5c7598c953e49755576cda6b2b2a9daaf89a837",
        defillama_pool_id="e50ce450-d2b8-45fe-b496-9ee1fb5673c2",
        token_x="WS",
        token_y="WETH",
    ),
    VaultIdentity.create(
        name="USDC • WETH | Shadow",
        vault_address="0xd4083994F3ce977bcb5d3022041D489B162f5B85",
        strategy_address="0x0806709c30A2999867160A1e4064f29ecCFA4605",
        pool_address="0x6fb30f3fcb864d49cdff15061ed5c6adfee40b40",
        rewards_address="0x8cdec539ba3d3857ec29b491c78cfb48f5d34f56",
        defillama_pool_id="a5ea7bec-91e2-4743-964d-35ea9034b0bd",
        token_x="USDC",
        token_y="WETH",
    ),
]


class VaultRegistry:
    """Lookup table over vault identities"""

    def __init__(self, vaults: Optional[List[VaultIdentity]] = None):
        self._vaults: List[VaultIdentity] = list(DEFAULT_VAULTS if vaults is None else vaults)
        self._by_address: Dict[str, VaultIdentity] = {
            normalize_address(v.vault_address): v for v in self._vaults
        }
        unsupported = [v.name for v in self._vaults if v.protocol == RangeProtocol.UNSUPPORTED]
        if unsupported:
            logger.warning(f"Vaults with no recognised protocol marker: {unsupported}")

    def __iter__(self) -> Iterator[VaultIdentity]:
        return iter(self._vaults)

    def __len__(self) -> int:
        return len(self._vaults)

    def get_by_address(self, address: str) -> Optional[VaultIdentity]:
        """Case-insensitive lookup by vault address"""
        return self._by_address.get(normalize_address(address))

    def get_by_name(self, name: str) -> Optional[VaultIdentity]:
        for vault in self._vaults:
            if vault.name == name:
                return vault
        return None

    def require(self, address: str) -> VaultIdentity:
        vault = self.get_by_address(address)
        if vault is None:
            raise ConfigurationError("Vault address is not registered", address)
        return vault

    def by_protocol(self, protocol: RangeProtocol) -> List[VaultIdentity]:
        return [v for v in self._vaults if v.protocol == protocol]
