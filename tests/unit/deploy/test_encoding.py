"""Unit tests for ABI encoding helpers."""

from __future__ import annotations

import pytest
from eth_abi import encode

from chaindeck.deploy.clients.encoding import (
    decode_revert_reason,
    encode_arguments,
    encode_call,
    encode_constructor,
    signature_types,
)
from chaindeck.lib.errors import ChainClientError

ADDRESS = "0x" + "11" * 20
WORD_ONE = "00" * 31 + "01"
WORD_TWO = "00" * 31 + "02"


def _revert_payload(reason: str) -> str:
    return "0x08c379a0" + encode(["string"], [reason]).hex()


class TestCallEncoding:
    """Tests for action call data."""

    def test_selector_and_arguments(self) -> None:
        """Call data is the 4-byte selector followed by encoded arguments."""
        data = encode_call("transfer(address,uint256)", [ADDRESS, 2])

        assert data.startswith("0xa9059cbb")
        assert data[10:] == "00" * 12 + "11" * 20 + WORD_TWO

    def test_numeric_strings_are_integers(self) -> None:
        """Decimal and hex strings are accepted for integer types."""
        assert encode_arguments(["uint256"], ["0x02"]) == encode_arguments(
            ["uint256"], [2]
        )
        assert encode_arguments(["uint256"], ["1"]).hex() == WORD_ONE

    def test_tuple_arguments(self) -> None:
        """Nested lists encode as tuples."""
        data = encode_call("setVersion((uint8,uint8))", [[1, 2]])

        assert data[10:] == WORD_ONE + WORD_TWO

    def test_signature_types(self) -> None:
        """Tuple argument types are kept whole."""
        types = signature_types(
            "addAndUseTREXVersion((uint8,uint8,uint8),(address,address))"
        )

        assert types == ["(uint8,uint8,uint8)", "(address,address)"]

    def test_no_arguments(self) -> None:
        """A signature without arguments yields just the selector."""
        data = encode_call("renounceOwnership()", [])

        assert len(data) == 10

    def test_argument_count_mismatch(self) -> None:
        """Too few arguments are rejected before encoding."""
        with pytest.raises(ChainClientError, match="Expected 2 arguments, got 1"):
            encode_call("transfer(address,uint256)", [ADDRESS])

    def test_invalid_value(self) -> None:
        """Values that do not fit the type are rejected."""
        with pytest.raises(ChainClientError, match="Cannot encode"):
            encode_arguments(["address"], ["not-an-address"])

    def test_list_required_for_array(self) -> None:
        """Array types need list values."""
        with pytest.raises(ChainClientError, match="Expected a list"):
            encode_arguments(["address[]"], [ADDRESS])


class TestConstructorEncoding:
    """Tests for constructor argument encoding."""

    def test_no_constructor(self) -> None:
        """Units without constructor inputs append nothing."""
        assert encode_constructor([], []) == ""

    def test_address_and_bool(self) -> None:
        """Constructor arguments are encoded without a 0x prefix."""
        inputs = [
            {"name": "owner", "type": "address"},
            {"name": "flag", "type": "bool"},
        ]

        encoded = encode_constructor(inputs, [ADDRESS, True])

        assert encoded == "00" * 12 + "11" * 20 + WORD_ONE

    def test_struct_from_mapping(self) -> None:
        """Struct values given as mappings are ordered by component name."""
        inputs = [
            {
                "name": "version",
                "type": "tuple",
                "components": [
                    {"name": "major", "type": "uint8"},
                    {"name": "minor", "type": "uint8"},
                ],
            }
        ]

        encoded = encode_constructor(inputs, [{"minor": 2, "major": 1}])

        assert encoded == WORD_ONE + WORD_TWO

    def test_struct_missing_field(self) -> None:
        """A mapping without every component is rejected."""
        inputs = [
            {
                "name": "version",
                "type": "tuple",
                "components": [
                    {"name": "major", "type": "uint8"},
                    {"name": "minor", "type": "uint8"},
                ],
            }
        ]

        with pytest.raises(ChainClientError, match="Missing struct field"):
            encode_constructor(inputs, [{"major": 1}])

    def test_argument_count_mismatch(self) -> None:
        """The plan must supply every constructor argument."""
        with pytest.raises(ChainClientError, match="expects 1 arguments, got 0"):
            encode_constructor([{"name": "owner", "type": "address"}], [])


class TestRevertDecoding:
    """Tests for Error(string) revert payloads."""

    def test_decodes_reason(self) -> None:
        """The revert string is extracted from the payload."""
        assert decode_revert_reason(_revert_payload("already set")) == "already set"

    @pytest.mark.parametrize("data", [None, "", "0x", "0xdeadbeef", {"x": 1}])
    def test_other_payloads(self, data: object) -> None:
        """Anything that is not Error(string) yields None."""
        assert decode_revert_reason(data) is None  # type: ignore[arg-type]

    def test_truncated_payload(self) -> None:
        """A truncated payload yields None instead of raising."""
        assert decode_revert_reason("0x08c379a0" + "00" * 10) is None
