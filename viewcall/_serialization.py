"""Conversion between JSON-RPC values and Python objects."""

from collections.abc import Mapping, Sequence
from types import MappingProxyType, NoneType, UnionType
from typing import Any, TypeVar, Union, cast

from compages import (
    StructureDictIntoDataclass,
    Structurer,
    StructuringError,
    Unstructurer,
    simple_structure,
    simple_typechecked_unstructure,
    structure_into_int,
    structure_into_none,
    structure_into_str,
    structure_into_union,
    unstructure_as_none,
    unstructure_as_str,
)

from ._entities import Address, BlockLabel, ErrorCode, ErrorData

JSON = None | bool | int | float | str | Sequence["JSON"] | Mapping[str, "JSON"]
"""Values serializable to JSON."""

__all__ = ["JSON", "StructuringError", "structure", "unstructure"]


def _hex_to_bytes(val: Any) -> bytes:
    if not isinstance(val, str) or not val.startswith("0x"):
        raise StructuringError("The value must be a 0x-prefixed hex-encoded data")
    try:
        return bytes.fromhex(val[2:])
    except ValueError as exc:
        raise StructuringError(str(exc)) from exc


@simple_structure
def _structure_bytes(val: Any) -> bytes:
    return _hex_to_bytes(val)


def _structure_address(
    _structurer: Structurer, structure_into: type[Address], val: Any
) -> Address:
    return structure_into(_hex_to_bytes(val))


@simple_structure
def _structure_error_data(val: Any) -> bytes:
    if isinstance(val, Mapping):
        # No payload in the nested object means there is nothing to decode
        val = val.get("data", "0x")
    return _hex_to_bytes(val)


@simple_structure
def _structure_quantity(val: Any) -> int:
    if not isinstance(val, str) or not val.startswith("0x"):
        raise StructuringError("The value must be a 0x-prefixed hex-encoded integer")
    return int(val, 16)


@simple_typechecked_unstructure
def _unstructure_address(obj: Address) -> str:
    return obj.checksum


@simple_typechecked_unstructure
def _unstructure_block_label(obj: BlockLabel) -> str:
    return obj.value


@simple_typechecked_unstructure
def _unstructure_quantity(obj: int) -> str:
    return hex(obj)


@simple_typechecked_unstructure
def _unstructure_bytes(obj: bytes) -> str:
    return "0x" + obj.hex()


def _rpc_field_name(name: str, _metadata: MappingProxyType[Any, Any]) -> str:
    # `from_` -> `from`, `some_field` -> `someField`
    head, *tail = name.rstrip("_").split("_")
    return head + "".join(part.capitalize() for part in tail)


STRUCTURER = Structurer(
    {
        Address: _structure_address,
        # Error codes are plain JSON numbers
        ErrorCode: structure_into_int,
        ErrorData: _structure_error_data,
        int: _structure_quantity,
        str: structure_into_str,
        bytes: _structure_bytes,
        UnionType: structure_into_union,
        Union: structure_into_union,
        NoneType: structure_into_none,
    },
    [StructureDictIntoDataclass(_rpc_field_name)],
)

UNSTRUCTURER = Unstructurer(
    {
        Address: _unstructure_address,
        BlockLabel: _unstructure_block_label,
        int: _unstructure_quantity,
        bytes: _unstructure_bytes,
        str: unstructure_as_str,
        NoneType: unstructure_as_none,
    },
    [],
)


_T = TypeVar("_T")


def structure(structure_into: type[_T], obj: JSON) -> _T:
    """Converts JSON data received from the node into ``structure_into``."""
    return STRUCTURER.structure_into(structure_into, obj)


def unstructure(obj: Any, unstructure_as: Any = None) -> JSON:
    """Converts ``obj`` into JSON data to be sent to the node."""
    # The hooks above only produce JSON-compatible values
    return cast(JSON, UNSTRUCTURER.unstructure_as(unstructure_as or type(obj), obj))
