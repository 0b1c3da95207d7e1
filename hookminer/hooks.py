"""
Hook-permission bit layout.

Uniswap v4 style hooks encode their permissions in the low 14 bits of the
deployed contract address. The LBP strategy only enables ``beforeInitialize``
(bit 13), so its address must satisfy ``low16 & 0x3fff == 0x2000``.
"""

from dataclasses import dataclass
from typing import Union

from eth_utils import to_canonical_address

V4_ALL_HOOK_MASK = 0x3FFF
BEFORE_INITIALIZE_FLAG = 1 << 13
REQUIRED_HOOK_BITS = BEFORE_INITIALIZE_FLAG

AddressLike = Union[str, bytes]


def low16(address: AddressLike) -> int:
    """Last four hex nibbles of an address as an integer."""
    return int.from_bytes(to_canonical_address(address)[-2:], "big")


@dataclass(frozen=True)
class HookBits:
    mask: int = V4_ALL_HOOK_MASK
    required: int = REQUIRED_HOOK_BITS

    def __post_init__(self) -> None:
        if not 0 <= self.mask <= 0xFFFF:
            raise ValueError("mask must fit in 16 bits")
        if self.required & ~self.mask:
            raise ValueError("required bits must be a subset of the mask")

    def matches(self, address: AddressLike) -> bool:
        return (low16(address) & self.mask) == self.required


def is_valid_hook_address(
    address: AddressLike,
    mask: int = V4_ALL_HOOK_MASK,
    required: int = REQUIRED_HOOK_BITS,
) -> bool:
    return HookBits(mask, required).matches(address)
