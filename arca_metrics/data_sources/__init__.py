"""
External read surfaces: price and yields APIs, contract ABIs, vault registry
"""

from .coingecko import CoinGeckoClient
from .defillama import DefiLlamaClient
from .contracts import (
    ContractReader,
    Slot0,
    decode_slot0_v1,
    decode_range,
    decode_balances,
)
from .vault_registry import (
    RangeProtocol,
    VaultIdentity,
    VaultRegistry,
    resolve_protocol,
    DEFAULT_VAULTS,
)

__all__ = [
    "CoinGeckoClient",
    "DefiLlamaClient",
    "ContractReader",
    "Slot0",
    "decode_slot0_v1",
    "decode_range",
    "decode_balances",
    "RangeProtocol",
    "VaultIdentity",
    "VaultRegistry",
    "resolve_protocol",
    "DEFAULT_VAULTS",
]
