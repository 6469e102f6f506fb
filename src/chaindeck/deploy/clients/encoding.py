"""ABI encoding helpers for constructor and action call data."""

from __future__ import annotations

import contextlib
from collections.abc import Mapping, Sequence
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError
from eth_abi.grammar import ABIType, TupleType, parse
from eth_utils import function_signature_to_4byte_selector, to_bytes
from eth_utils.abi import collapse_if_tuple

from chaindeck.lib.errors import ChainClientError

# Error(string) selector used by Solidity require/revert messages
REVERT_SELECTOR = "0x08c379a0"


def _coerce(abi_type: ABIType, value: Any) -> Any:
    """Convert YAML-friendly values into what eth-abi expects."""
    if abi_type.is_array:
        if not isinstance(value, Sequence) or isinstance(value, str | bytes):
            raise ChainClientError(
                "encode", f"Expected a list for {abi_type.to_type_str()}, got {value!r}"
            )
        return [_coerce(abi_type.item_type, item) for item in value]

    if isinstance(abi_type, TupleType):
        components = abi_type.components
        if isinstance(value, Mapping):
            value = list(value.values())
        if not isinstance(value, Sequence) or len(value) != len(components):
            raise ChainClientError(
                "encode",
                f"Expected {len(components)} values for {abi_type.to_type_str()}, "
                f"got {value!r}",
            )
        return tuple(_coerce(t, v) for t, v in zip(components, value, strict=True))

    base = abi_type.base
    if base in ("uint", "int") and isinstance(value, str):
        return int(value, 0)
    if base == "bytes" and isinstance(value, str):
        return to_bytes(hexstr=value)
    return value


def _struct_to_list(value: Any, abi_input: Mapping[str, Any]) -> Any:
    """Order mapping values by ABI component names."""
    components = abi_input.get("components")
    if not components:
        return value
    if abi_input.get("type", "").endswith("]") and isinstance(value, list):
        item = {**abi_input, "type": abi_input["type"].rsplit("[", 1)[0]}
        return [_struct_to_list(v, item) for v in value]
    if isinstance(value, Mapping):
        try:
            return [
                _struct_to_list(value[component["name"]], component)
                for component in components
            ]
        except KeyError as exc:
            raise ChainClientError("encode", f"Missing struct field {exc}") from exc
    return value


def encode_arguments(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode values for the given type strings.

    Raises:
        ChainClientError: If the values do not match the types
    """
    if len(types) != len(values):
        raise ChainClientError(
            "encode", f"Expected {len(types)} arguments, got {len(values)}"
        )
    try:
        coerced = [_coerce(parse(t), v) for t, v in zip(types, values, strict=True)]
        return encode(list(types), coerced)
    except (ABITypeError, EncodingError, ParseError, ValueError, TypeError) as exc:
        raise ChainClientError("encode", f"Cannot encode arguments: {exc}") from exc


def encode_constructor(abi_inputs: Sequence[Mapping[str, Any]], args: Sequence[Any]) -> str:
    """Return hex-encoded constructor arguments (without 0x prefix)."""
    if not abi_inputs and not args:
        return ""
    if len(args) != len(abi_inputs):
        raise ChainClientError(
            "encode",
            f"Constructor expects {len(abi_inputs)} arguments, got {len(args)}",
        )
    types = [collapse_if_tuple(dict(item)) for item in abi_inputs]
    values = [
        _struct_to_list(value, item)
        for value, item in zip(args, abi_inputs, strict=True)
    ]
    return encode_arguments(types, values).hex()


def signature_types(signature: str) -> list[str]:
    """Return the argument type strings of a function signature."""
    arg_list = signature[signature.index("(") :]
    try:
        parsed = parse(arg_list)
    except ParseError as exc:
        raise ChainClientError("encode", f"Invalid signature {signature}: {exc}") from exc
    if not isinstance(parsed, TupleType):
        raise ChainClientError("encode", f"Invalid signature {signature}")
    return [component.to_type_str() for component in parsed.components]


def encode_call(signature: str, args: Sequence[Any]) -> str:
    """Return 0x-prefixed call data for a function signature and arguments."""
    selector = function_signature_to_4byte_selector(signature)
    body = encode_arguments(signature_types(signature), list(args))
    return "0x" + (selector + body).hex()


def decode_revert_reason(data: str | None) -> str | None:
    """Decode an Error(string) revert payload, if that is what ``data`` holds."""
    if not isinstance(data, str) or not data.startswith(REVERT_SELECTOR):
        return None
    reason = None
    with contextlib.suppress(Exception):
        (reason,) = decode(["string"], to_bytes(hexstr=data)[4:])
    return str(reason) if reason is not None else None
