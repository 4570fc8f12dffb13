"""Tests for identity normalization."""

import pytest
from web3 import Web3

from crowdfund.errors import InvalidIdentity
from crowdfund.identity import new_identity, normalize_identity


class TestNormalizeIdentity:
    def test_returns_checksum_form(self) -> None:
        raw = "0x" + "ab" * 20
        assert normalize_identity(raw) == Web3.to_checksum_address(raw)

    def test_strips_whitespace(self) -> None:
        raw = "0x" + "ab" * 20
        assert normalize_identity(f"  {raw}\n") == Web3.to_checksum_address(raw)

    def test_casing_variants_collapse(self) -> None:
        assert normalize_identity("0x" + "ab" * 20) == normalize_identity("0x" + "AB" * 20)

    @pytest.mark.parametrize("bad", ["", "   ", "alice", "0x1234", "0x" + "zz" * 20, None, 42])
    def test_rejects_malformed(self, bad) -> None:
        with pytest.raises(InvalidIdentity):
            normalize_identity(bad)


class TestNewIdentity:
    def test_generates_valid_distinct_accounts(self) -> None:
        a, key_a = new_identity()
        b, _ = new_identity()
        assert normalize_identity(a) == a
        assert a != b
        assert key_a
