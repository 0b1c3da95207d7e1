import pytest
from eth_utils import keccak

from conftest import TOKEN, USER
from hookminer import encoding


def _word(addr: str) -> bytes:
    return bytes.fromhex(addr[2:]).rjust(32, b"\x00")


def test_base_num_is_low_32_bits_of_abi_encoded_hash():
    digest = keccak(_word(TOKEN) + _word(USER))
    assert encoding.base_hash(TOKEN, USER) == digest
    assert encoding.base_num(TOKEN, USER) == int(digest.hex()[-8:], 16)
    assert 0 <= encoding.base_num(TOKEN, USER) < 2 ** 32


def test_base_num_depends_on_argument_order():
    assert encoding.base_num(TOKEN, USER) != encoding.base_num(USER, TOKEN)


def test_base_num_accepts_checksummed_and_lowercase():
    upper = "0x2804625BB433506a105Eb5e5c81055445cdf1d07"
    assert encoding.base_num(upper, USER) == encoding.base_num(TOKEN, USER)


def test_outer_salt_wraps_at_0xffffffff():
    assert encoding.outer_salt(5, 3) == (8).to_bytes(32, "big")
    assert encoding.outer_salt(0xFFFFFFFE, 1) == bytes(32)
    assert encoding.outer_salt(0xFFFFFFFE, 2) == (1).to_bytes(32, "big")
    assert len(encoding.outer_salt(0xFFFFFFFF, 10 ** 6)) == 32


def test_inner_salt_is_hash_of_user_and_word():
    outer = (42).to_bytes(32, "big")
    expected = keccak(_word(USER) + outer)
    assert encoding.inner_salt(USER, outer) == expected
    assert encoding.inner_salt(USER, 42) == expected
    assert encoding.inner_salt(USER, "0x2a") == expected


def test_hex_helpers():
    assert encoding.strip0x("0xabcd") == "abcd"
    assert encoding.to_bytes("0x0102") == b"\x01\x02"
    with pytest.raises(ValueError):
        encoding.to_bytes("0x123")
    with pytest.raises(ValueError):
        encoding.to_bytes("0xzz")


def test_as_word_rejects_oversized_values():
    with pytest.raises(ValueError):
        encoding.as_word(-1)
    with pytest.raises(ValueError):
        encoding.as_word(1 << 256)
    with pytest.raises(ValueError):
        encoding.pad32(b"\x01" * 33)
