"""
Hashing and byte-packing helpers shared by the miner, the oracle and the CLI.

The salt derivation must match what the launcher contract does on-chain:

    base  = keccak256(abi.encode(address token, address user))  -> low 32 bits
    outer = bytes32((base + index) % 0xFFFFFFFF)
    inner = keccak256(abi.encode(address user, bytes32 outer))
"""

from typing import Union

from eth_abi import encode as abi_encode
from eth_utils import keccak, to_canonical_address

SALT_MODULUS = 0xFFFFFFFF

# -------------------------- Helpers --------------------------

def strip0x(h: str) -> str:
    return h[2:] if h.startswith(("0x", "0X")) else h

def to_bytes(h: str) -> bytes:
    h2 = strip0x(h)
    if len(h2) % 2 != 0:
        raise ValueError("Hex length must be even")
    try:
        return bytes.fromhex(h2)
    except ValueError as e:
        raise ValueError(f"Invalid hex: {e}") from e

def pad32(b: bytes) -> bytes:
    if len(b) > 32:
        raise ValueError("value does not fit in 32 bytes")
    return b.rjust(32, b"\x00")

def as_word(value: Union[int, bytes, str]) -> bytes:
    """Coerce an int, raw bytes or hex string into a left-padded 32-byte word."""
    if isinstance(value, int):
        if value < 0 or value.bit_length() > 256:
            raise ValueError("word must be an unsigned 256-bit integer")
        return value.to_bytes(32, "big")
    if isinstance(value, str):
        value = to_bytes(value)
    return pad32(bytes(value))

# -------------------------- Salt derivation --------------------------

def base_hash(token: str, user: str) -> bytes:
    return keccak(abi_encode(["address", "address"], [to_canonical_address(token), to_canonical_address(user)]))

def base_num(token: str, user: str) -> int:
    """Low 32 bits of the (token, user) base hash as an unsigned integer."""
    return int.from_bytes(base_hash(token, user)[-4:], "big")

def outer_salt(base: int, index: int) -> bytes:
    return ((base + index) % SALT_MODULUS).to_bytes(32, "big")

def inner_salt(user: str, outer: Union[int, bytes, str]) -> bytes:
    return keccak(abi_encode(["address", "bytes32"], [to_canonical_address(user), as_word(outer)]))
