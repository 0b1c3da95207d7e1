import pytest

from hookminer.hooks import (BEFORE_INITIALIZE_FLAG, V4_ALL_HOOK_MASK, HookBits,
                             is_valid_hook_address, low16)

PREFIX = "0xabcd" + "00" * 16


def test_low16_reads_last_four_nibbles():
    assert low16(PREFIX + "2000") == 0x2000
    assert low16(bytes(18) + b"\x12\x34") == 0x1234


def test_required_bit_pattern():
    assert is_valid_hook_address(PREFIX + "2000")
    assert not is_valid_hook_address(PREFIX + "0000")


def test_bits_above_mask_are_ignored():
    # bits 14 and 15 are outside the 14-bit hook mask
    assert is_valid_hook_address(PREFIX + "e000")


def test_extra_flags_inside_mask_fail():
    assert not is_valid_hook_address(PREFIX + "2001")
    assert not is_valid_hook_address(PREFIX + "3000")


def test_defaults():
    assert V4_ALL_HOOK_MASK == 0x3FFF
    assert BEFORE_INITIALIZE_FLAG == 0x2000
    assert HookBits().matches(PREFIX + "2000")


def test_custom_layout():
    bits = HookBits(mask=0x000F, required=0x0005)
    assert bits.matches(PREFIX + "ff05")
    assert not bits.matches(PREFIX + "2000")


@pytest.mark.parametrize("mask,required", [(0x3FFF, 0x4000), (0x1FFFF, 0x0), (-1, 0)])
def test_invalid_layouts(mask, required):
    with pytest.raises(ValueError):
        HookBits(mask, required)


def test_malformed_address_raises():
    with pytest.raises(ValueError):
        low16("0x1234")
