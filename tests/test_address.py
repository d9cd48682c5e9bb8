"""
Tests for slpmerit.address
"""

from __future__ import annotations

import pytest

from slpmerit.address import (
    decode_cashaddr,
    encode_cashaddr,
    to_cash_address,
    to_slp_address,
)
from slpmerit.errors import AddressFormatError

# Test vectors from the CashAddr specification
LEGACY_P2PKH = "1BpEi6DfDAUFd7GtittLSdBeYJvcoaVggu"
CASH_P2PKH = "bitcoincash:qpm2qsznhks23z7629mms6s4cwef74vcwvy22gdx6a"
LEGACY_P2SH = "3CWFddi6m4ndiGyKqzYvsFYagqDLPVMTzC"
CASH_P2SH = "bitcoincash:ppm2qsznhks23z7629mms6s4cwef74vcwvn0h829pq"


class TestToCashAddress:
    """Tests for normalization to canonical CashAddr."""

    def test_slp_address_converts(self, cash_address: str, slp_address: str) -> None:
        assert to_cash_address(slp_address) == cash_address

    def test_cash_address_unchanged(self, cash_address: str) -> None:
        assert to_cash_address(cash_address) == cash_address

    def test_unprefixed_address(self) -> None:
        assert to_cash_address(CASH_P2PKH.split(":")[1]) == CASH_P2PKH

    def test_unprefixed_slp_address(self, cash_address: str, slp_address: str) -> None:
        assert to_cash_address(slp_address.split(":")[1]) == cash_address

    def test_uppercase_address(self) -> None:
        assert to_cash_address(CASH_P2PKH.upper()) == CASH_P2PKH

    def test_surrounding_whitespace(self, cash_address: str, slp_address: str) -> None:
        assert to_cash_address(f"  {slp_address}\n") == cash_address

    def test_legacy_p2pkh(self) -> None:
        assert to_cash_address(LEGACY_P2PKH) == CASH_P2PKH

    def test_legacy_p2sh(self) -> None:
        assert to_cash_address(LEGACY_P2SH) == CASH_P2SH

    def test_testnet_prefix_preserved(self) -> None:
        slp_testnet = encode_cashaddr("slptest", "p2pkh", bytes(range(20)))
        assert to_cash_address(slp_testnet).startswith("bchtest:")


class TestToSlpAddress:
    def test_cash_to_slp(self, cash_address: str, slp_address: str) -> None:
        assert to_slp_address(cash_address) == slp_address

    def test_legacy_to_slp(self) -> None:
        assert to_slp_address(LEGACY_P2PKH).startswith("simpleledger:")
        assert to_cash_address(to_slp_address(LEGACY_P2PKH)) == CASH_P2PKH


class TestMalformedAddresses:
    """Malformed input raises AddressFormatError."""

    @pytest.mark.parametrize(
        "address",
        [
            "",
            "   ",
            "hello",
            CASH_P2PKH[:-1] + "q",  # checksum broken
            "bitcoincash:QPM2qsznhks23z7629mms6s4cwef74vcwvy22gdx6a",  # mixed case
            "bitcoincash:qpm2qsznhks23z7629mms6s4cwef74vcwvy22gdx6b",  # 'b' not in charset
            "unknownprefix:qpm2qsznhks23z7629mms6s4cwef74vcwvy22gdx6a",
            LEGACY_P2PKH[:-1] + "v",  # Base58 checksum broken
        ],
    )
    def test_rejected(self, address: str) -> None:
        with pytest.raises(AddressFormatError):
            to_cash_address(address)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(AddressFormatError):
            to_cash_address(None)  # type: ignore[arg-type]


class TestCashAddrCodec:
    def test_decode_returns_type_and_hash(self) -> None:
        prefix, address_type, hash_bytes = decode_cashaddr(CASH_P2SH)
        assert prefix == "bitcoincash"
        assert address_type == "p2sh"
        assert len(hash_bytes) == 20

    def test_encode_matches_decode(self) -> None:
        _, address_type, hash_bytes = decode_cashaddr(CASH_P2PKH)
        assert encode_cashaddr("bitcoincash", address_type, hash_bytes) == CASH_P2PKH

    def test_same_hash_for_slp_and_cash(self, cash_address: str, slp_address: str) -> None:
        assert decode_cashaddr(slp_address)[2] == decode_cashaddr(cash_address)[2]

    def test_encode_rejects_bad_hash_length(self) -> None:
        with pytest.raises(AddressFormatError):
            encode_cashaddr("bitcoincash", "p2pkh", b"\x00" * 19)
