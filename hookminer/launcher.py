"""
Liquidity launcher protocol constants and strategy config-data encoding.

The miner treats ``configData`` as opaque bytes, but the prediction only
matches the real deployment when the caller encodes exactly what it will later
submit. These helpers mirror the launcher's Solidity structs.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from eth_abi import encode as abi_encode
from eth_utils import to_canonical_address

# -------------------------- Sepolia deployment --------------------------

LIQUIDITY_LAUNCHER_ADDRESS = "0x00000008412db3394C91A5CbD01635c6d140637C"
VIRTUAL_LBP_STRATEGY_FACTORY_ADDRESS = "0xC695ee292c39Be6a10119C70Ed783d067fcecfA4"
CONTINUOUS_CLEARING_AUCTION_FACTORY_ADDRESS = "0x0000ccaDF55C911a2FbC0BB9d2942Aa77c6FAa1D"
USDC_SEPOLIA = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
# Auction placeholder resolved to the caller of distributeToken
MSG_SENDER = "0x0000000000000000000000000000000000000001"

Q96 = 1 << 96
BLOCK_TIME_SECONDS = 12

LBP_FACTORY_ABI = [
    {
        "type": "function",
        "name": "getLBPAddress",
        "stateMutability": "view",
        "inputs": [
            {"name": "token", "type": "address", "internalType": "address"},
            {"name": "totalSupply", "type": "uint256", "internalType": "uint256"},
            {"name": "configData", "type": "bytes", "internalType": "bytes"},
            {"name": "salt", "type": "bytes32", "internalType": "bytes32"},
            {"name": "sender", "type": "address", "internalType": "address"},
        ],
        "outputs": [{"name": "", "type": "address", "internalType": "address"}],
    }
]

MIGRATOR_TUPLE = "(uint64,address,uint24,int24,uint24,address,address,uint64,address,bool,bool)"
AUCTION_TYPES = [
    "address",
    "address",
    "address",
    "uint64",
    "uint64",
    "uint64",
    "uint256",
    "address",
    "uint256",
    "uint128",
    "bytes",
]

UINT24_MAX = 0xFFFFFF
UINT40_MAX = 0xFFFFFFFFFF

# -------------------------- Structs --------------------------

@dataclass(frozen=True)
class AuctionStep:
    mps: int
    block_delta: int


@dataclass(frozen=True)
class MigratorParameters:
    migration_block: int
    currency: str
    pool_lp_fee: int  # hundredths of a bip, 1e6 = 100%
    pool_tick_spacing: int
    token_split_to_auction: int  # mps, 1e7 = 100%
    auction_factory: str
    position_recipient: str
    sweep_block: int
    operator: str
    create_one_sided_token_position: bool = False
    create_one_sided_currency_position: bool = False

    def abi_values(self) -> tuple:
        return (
            self.migration_block,
            to_canonical_address(self.currency),
            self.pool_lp_fee,
            self.pool_tick_spacing,
            self.token_split_to_auction,
            to_canonical_address(self.auction_factory),
            to_canonical_address(self.position_recipient),
            self.sweep_block,
            to_canonical_address(self.operator),
            self.create_one_sided_token_position,
            self.create_one_sided_currency_position,
        )


@dataclass(frozen=True)
class AuctionParameters:
    currency: str  # address(0) raises ETH
    tokens_recipient: str
    funds_recipient: str
    start_block: int
    end_block: int
    claim_block: int
    tick_spacing: int
    validation_hook: str
    floor_price: int  # Q96
    required_currency_raised: int
    auction_steps_data: bytes

    def abi_values(self) -> tuple:
        return (
            to_canonical_address(self.currency),
            to_canonical_address(self.tokens_recipient),
            to_canonical_address(self.funds_recipient),
            self.start_block,
            self.end_block,
            self.claim_block,
            self.tick_spacing,
            to_canonical_address(self.validation_hook),
            self.floor_price,
            self.required_currency_raised,
            bytes(self.auction_steps_data),
        )

# -------------------------- Encoders --------------------------

def encode_auction_steps(steps: Sequence[AuctionStep]) -> bytes:
    """Pack steps as consecutive ``uint24 mps || uint40 blockDelta`` records."""
    out = bytearray()
    for step in steps:
        if not 0 <= step.mps <= UINT24_MAX:
            raise ValueError(f"auction step mps out of range (uint24): {step.mps}")
        if not 0 <= step.block_delta <= UINT40_MAX:
            raise ValueError(f"auction step blockDelta out of range (uint40): {step.block_delta}")
        out += step.mps.to_bytes(3, "big") + step.block_delta.to_bytes(5, "big")
    return bytes(out)


def decode_auction_steps(data: bytes) -> List[AuctionStep]:
    if len(data) % 8:
        raise ValueError("auction steps data must be a multiple of 8 bytes")
    return [
        AuctionStep(int.from_bytes(data[i:i + 3], "big"), int.from_bytes(data[i + 3:i + 8], "big"))
        for i in range(0, len(data), 8)
    ]


def encode_auction_parameters(auction: AuctionParameters) -> bytes:
    return abi_encode(AUCTION_TYPES, list(auction.abi_values()))


def encode_lbp_config_data(migrator: MigratorParameters, auction: AuctionParameters) -> bytes:
    return abi_encode(
        [MIGRATOR_TUPLE, "bytes"],
        [migrator.abi_values(), encode_auction_parameters(auction)],
    )


def encode_virtual_lbp_config_data(
    governance: str, migrator: MigratorParameters, auction: AuctionParameters
) -> bytes:
    return abi_encode(
        ["address", MIGRATOR_TUPLE, "bytes"],
        [to_canonical_address(governance), migrator.abi_values(), encode_auction_parameters(auction)],
    )

# -------------------------- Example parameters --------------------------

def floor_price_q96(price: float, currency_decimals: int = 6, token_decimals: int = 18) -> int:
    """Price of one whole token in currency units, as a Q96 ratio of base units."""
    return math.floor(price * 10 ** currency_decimals) * Q96 // 10 ** token_decimals


def example_config(
    user: str,
    current_block: int,
    *,
    currency: str = USDC_SEPOLIA,
    floor_price: float = 0.001,
    duration_seconds: int = 24 * 3600,
) -> Tuple[MigratorParameters, AuctionParameters]:
    """
    Parameters the manual mining run uses: a 24h auction starting five blocks
    out, released in a 40/40/20 schedule, 80% of supply sold.
    """
    duration = duration_seconds // BLOCK_TIME_SECONDS
    start_block = current_block + 5
    end_block = start_block + duration
    claim_block = end_block + 10
    migration_block = end_block + 100
    sweep_block = migration_block + 1000

    step1 = math.floor(duration * 0.4)
    step2 = math.floor(duration * 0.4)
    step3 = duration - step1 - step2
    steps = encode_auction_steps([
        AuctionStep(mps=500_000, block_delta=step1),
        AuctionStep(mps=1_000_000, block_delta=step2),
        AuctionStep(mps=1_500_000, block_delta=step3),
    ])

    migrator = MigratorParameters(
        migration_block=migration_block,
        currency=currency,
        pool_lp_fee=3000,
        pool_tick_spacing=60,
        token_split_to_auction=8_000_000,
        auction_factory=CONTINUOUS_CLEARING_AUCTION_FACTORY_ADDRESS,
        position_recipient=user,
        sweep_block=sweep_block,
        operator=user,
    )
    floor = floor_price_q96(floor_price)
    auction = AuctionParameters(
        currency=currency,
        tokens_recipient=user,
        funds_recipient=MSG_SENDER,
        start_block=start_block,
        end_block=end_block,
        claim_block=claim_block,
        tick_spacing=floor // 10_000,
        validation_hook=ZERO_ADDRESS,
        floor_price=floor,
        required_currency_raised=0,
        auction_steps_data=steps,
    )
    return migrator, auction


def example_config_data(user: str, current_block: int, governance: Optional[str] = None) -> bytes:
    migrator, auction = example_config(user, current_block)
    if governance:
        return encode_virtual_lbp_config_data(governance, migrator, auction)
    return encode_lbp_config_data(migrator, auction)
