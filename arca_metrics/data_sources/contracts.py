"""
Contract Read Surface
Minimal ABIs for the vault, strategy, LB book and CL pool contracts, plus
shape-checked decoders for their return values.

All contracts are treated as opaque read-only sources reached by
address + function name.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from web3 import AsyncWeb3

from ..infrastructure.errors import AbiShapeError, BlockchainError
from ..infrastructure.rpc import get_w3
from ..models import BalancePair
from ..normalization import to_int

logger = logging.getLogger("Contracts")

# Strategy contract: current token balances held by the vault
STRATEGY_ABI = [
    {
        "inputs": [],
        "name": "getBalances",
        "outputs": [
            {"name": "amountX", "type": "uint256"},
            {"name": "amountY", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
]

# Vault share token
VAULT_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
]

# Metropolis vault: bin range of the deployed position
METRO_VAULT_ABI = VAULT_ABI + [
    {
        "inputs": [],
        "name": "getRange",
        "outputs": [
            {"name": "low", "type": "uint24"},
            {"name": "upper", "type": "uint24"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
]

# Metropolis LB book: current active bin
LB_BOOK_ABI = [
    {
        "inputs": [],
        "name": "getActiveId",
        "outputs": [{"name": "activeId", "type": "uint24"}],
        "stateMutability": "view",
        "type": "function"
    },
]

# Shadow strategy: tick range of the deployed position
SHADOW_STRAT_ABI = STRATEGY_ABI + [
    {
        "inputs": [],
        "name": "getRange",
        "outputs": [
            {"name": "lower", "type": "int24"},
            {"name": "upper", "type": "int24"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
]

# Shadow concentrated liquidity pool (Uniswap V3 style slot0)
CL_POOL_ABI = [
    {
        "inputs": [],
        "name": "slot0",
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
]


# ============================================
# DECODERS
# ============================================

@dataclass(frozen=True)
class Slot0:
    sqrt_price_x96: int
    tick: int
    observation_index: int
    observation_cardinality: int
    observation_cardinality_next: int
    fee_protocol: int
    unlocked: bool


SLOT0_V1_FIELDS = [o["name"] for o in CL_POOL_ABI[0]["outputs"]]


def _describe(raw: Any) -> str:
    if isinstance(raw, (list, tuple)):
        return f"{type(raw).__name__} of {len(raw)}"
    return type(raw).__name__


def decode_slot0_v1(raw: Any) -> Slot0:
    """
    Decode slot0() against the v1 CL pool layout (active tick at index 1).
    Raises AbiShapeError if the pool returns a different shape.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) != len(SLOT0_V1_FIELDS):
        raise AbiShapeError("decode_slot0_v1", f"tuple of {len(SLOT0_V1_FIELDS)}", _describe(raw))

    tick = raw[1]
    if isinstance(tick, bool) or not isinstance(tick, int):
        raise AbiShapeError("decode_slot0_v1", "int24 tick at index 1", type(tick).__name__)

    return Slot0(
        sqrt_price_x96=to_int(raw[0]),
        tick=int(tick),
        observation_index=to_int(raw[2]),
        observation_cardinality=to_int(raw[3]),
        observation_cardinality_next=to_int(raw[4]),
        fee_protocol=to_int(raw[5]),
        unlocked=bool(raw[6]),
    )


def _decode_pair(raw: Any, decoder: str) -> Tuple[int, int]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise AbiShapeError(decoder, "tuple of 2", _describe(raw))
    try:
        return to_int(raw[0]), to_int(raw[1])
    except (TypeError, ValueError) as e:
        raise AbiShapeError(decoder, "two integers", str(e))


def decode_range(raw: Any) -> Tuple[int, int]:
    """getRange() -> (lower, upper), uint24 or int24 depending on protocol"""
    return _decode_pair(raw, "decode_range")


def decode_balances(raw: Any) -> BalancePair:
    """getBalances() -> (amountX, amountY)"""
    amount_x, amount_y = _decode_pair(raw, "decode_balances")
    return BalancePair(amount_x=amount_x, amount_y=amount_y)


# ============================================
# READER
# ============================================

class ContractReader:
    """Thin async wrapper over AsyncWeb3 view calls"""

    def __init__(self, w3: Optional[AsyncWeb3] = None):
        self._w3 = w3

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            self._w3 = get_w3()
        return self._w3

    async def call(self, address: str, abi: List[dict], function_name: str, *args) -> Any:
        """
        Call a view function and return the decoded value.
        Any RPC or decoding failure is raised as BlockchainError.
        """
        try:
            contract = self.w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(address),
                abi=abi
            )
            result = await getattr(contract.functions, function_name)(*args).call()
            logger.debug(f"{function_name}() on {address[:10]}... -> {result}")
            return result
        except Exception as e:
            raise BlockchainError(address, function_name, f"{function_name}() on {address} failed: {e}") from e
