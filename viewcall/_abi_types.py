import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from functools import cached_property
from typing import Any, cast

import eth_abi
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import is_hex_address

from ._entities import Address

ABI_JSON = None | bool | int | float | str | Sequence["ABI_JSON"] | Mapping[str, "ABI_JSON"]
"""JSON ABI, as produced by the Solidity compiler."""


class AbiEncodingError(Exception):
    """
    Raised when the arguments cannot be encoded as the expected ABI types
    (a wrong number of values, a value of a wrong type, or out of range).
    """


class AbiDecodingError(Exception):
    """Raised when the data returned by a call cannot be decoded as the expected ABI types."""


class Type(ABC):
    """
    The base class for ABI types.

    Values are checked against the type before they are handed to ``eth_abi``
    (see ``_normalize()``), and the values ``eth_abi`` returns are converted back
    to the representation used in this library (see ``_denormalize()``).
    """

    @property
    @abstractmethod
    def canonical_form(self) -> str:
        """The type as it appears in a function signature (e.g. ``uint256``, ``(bool,bytes)``)."""
        ...

    @property
    def dynamic(self) -> bool:
        """``True`` if the length of the encoded value depends on the value."""
        return False

    @property
    def head_size(self) -> int:
        """
        The number of bytes the type takes in the head of an encoded sequence:
        the value itself for static types, the offset of its tail for dynamic ones.
        """
        return 32

    @abstractmethod
    def _key(self) -> Any:
        """Returns the parameters distinguishing this type from others of the same class."""
        ...

    def _check_val(self, val: Any) -> None:
        """Raises ``TypeError`` or ``ValueError`` if ``val`` does not belong to this type."""

    def _normalize(self, val: Any) -> Any:
        """Checks ``val`` and converts it to the form ``eth_abi`` expects."""
        self._check_val(val)
        return val

    def _denormalize(self, val: Any) -> Any:
        """Checks a value returned by ``eth_abi`` and converts it to the public form."""
        self._check_val(val)
        return val

    def accepts(self, val: Any) -> bool:
        """Returns ``True`` if ``val`` can be encoded as this type."""
        try:
            self._normalize(val)
        except (TypeError, ValueError):
            return False
        return True

    def encode(self, val: Any) -> bytes:
        """Encodes a single value of this type."""
        return encode_args((self, val))

    def decode(self, val: bytes) -> Any:
        """Decodes a single value of this type."""
        return decode_args([self], val)[0]

    def __str__(self) -> str:
        return self.canonical_form

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self._key() == cast("Type", other)._key()

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def __getitem__(self, array_size: int | Any) -> "Array":
        # `tp[n]` makes a fixed-size array, `tp[...]` a dynamic one.
        if isinstance(array_size, int):
            return Array(self, array_size)
        if array_size == ...:
            return Array(self, None)
        raise TypeError(f"Invalid array size specifier type: {type(array_size).__name__}")


def _check_integer(type_name: str, val: Any) -> None:
    # `bool` is a subclass of `int`, but passing one is most likely a mistake
    if not isinstance(val, int) or isinstance(val, bool):
        raise TypeError(f"`{type_name}` must correspond to an integer, got {type(val).__name__}")


class UInt(Type):
    """Solidity's ``uint<bits>``."""

    def __init__(self, bits: int):
        if bits <= 0 or bits > 256 or bits % 8 != 0:
            raise ValueError(f"Incorrect `uint` bit size: {bits}")
        self._bits = bits

    @property
    def canonical_form(self) -> str:
        return f"uint{self._bits}"

    def _key(self) -> int:
        return self._bits

    def _check_val(self, val: Any) -> None:
        _check_integer(self.canonical_form, val)
        if val < 0:
            raise ValueError(
                f"`{self.canonical_form}` must correspond to a non-negative integer, got {val}"
            )
        if val.bit_length() > self._bits:
            raise ValueError(
                f"`{self.canonical_form}` must correspond to an unsigned integer "
                f"under {self._bits} bits, got {val}"
            )


class Int(Type):
    """Solidity's ``int<bits>``."""

    def __init__(self, bits: int):
        if bits <= 0 or bits > 256 or bits % 8 != 0:
            raise ValueError(f"Incorrect `int` bit size: {bits}")
        self._bits = bits

    @property
    def canonical_form(self) -> str:
        return f"int{self._bits}"

    def _key(self) -> int:
        return self._bits

    def _check_val(self, val: Any) -> None:
        _check_integer(self.canonical_form, val)
        bound = 1 << (self._bits - 1)
        if not -bound <= val < bound:
            raise ValueError(
                f"`{self.canonical_form}` must correspond to a signed integer "
                f"under {self._bits} bits, got {val}"
            )


class Bytes(Type):
    """Solidity's ``bytes<size>``, or ``bytes`` if the size is not given."""

    def __init__(self, size: None | int = None):
        if size is not None and (size <= 0 or size > 32):
            raise ValueError(f"Incorrect `bytes` size: {size}")
        self._size = size

    @property
    def canonical_form(self) -> str:
        return "bytes" if self._size is None else f"bytes{self._size}"

    @property
    def dynamic(self) -> bool:
        return self._size is None

    def _key(self) -> None | int:
        return self._size

    def _check_val(self, val: Any) -> None:
        if not isinstance(val, bytes):
            raise TypeError(
                f"`{self.canonical_form}` must correspond to a bytestring, "
                f"got {type(val).__name__}"
            )
        if self._size is not None and len(val) != self._size:
            raise ValueError(f"Expected {self._size} bytes, got {len(val)}")


class AddressType(Type):
    """
    Solidity's ``address``.
    Not to be confused with :py:class:`~viewcall.Address` which is an address value.

    Accepts :py:class:`~viewcall.Address` objects and hex strings;
    decodes into :py:class:`~viewcall.Address`.
    """

    @property
    def canonical_form(self) -> str:
        return "address"

    def _key(self) -> None:
        return None

    def _normalize(self, val: Any) -> bytes:
        if isinstance(val, Address):
            return bytes(val)
        if isinstance(val, str):
            if not is_hex_address(val):
                raise ValueError(f"`address` must correspond to a 20-byte hex string, got {val!r}")
            return bytes(Address.from_hex(val))
        raise TypeError(
            f"`address` must correspond to an `Address`-type value or a hex string, "
            f"got {type(val).__name__}"
        )

    def _denormalize(self, val: Any) -> Address:
        # `eth_abi` decodes addresses into checksummed hex strings
        return Address.from_hex(val)


class String(Type):
    """Solidity's ``string``."""

    @property
    def canonical_form(self) -> str:
        return "string"

    @property
    def dynamic(self) -> bool:
        return True

    def _key(self) -> None:
        return None

    def _check_val(self, val: Any) -> None:
        if not isinstance(val, str):
            raise TypeError(
                f"`string` must correspond to a `str`-type value, got {type(val).__name__}"
            )


class Bool(Type):
    """Solidity's ``bool``."""

    @property
    def canonical_form(self) -> str:
        return "bool"

    def _key(self) -> None:
        return None

    def _check_val(self, val: Any) -> None:
        if not isinstance(val, bool):
            raise TypeError(
                f"`bool` must correspond to a `bool`-type value, got {type(val).__name__}"
            )


class Array(Type):
    """
    A Solidity array of ``element_type``:
    ``T[size]`` if ``size`` is given, ``T[]`` otherwise.
    Values are passed and returned as lists.
    """

    def __init__(self, element_type: Type, size: None | int = None):
        if size is not None and size <= 0:
            raise ValueError(f"Incorrect array size: {size}")
        self._element_type = element_type
        self._size = size

    @cached_property
    def canonical_form(self) -> str:
        size = "" if self._size is None else str(self._size)
        return f"{self._element_type.canonical_form}[{size}]"

    @property
    def dynamic(self) -> bool:
        return self._size is None or self._element_type.dynamic

    @property
    def head_size(self) -> int:
        if self.dynamic:
            return 32
        return cast("int", self._size) * self._element_type.head_size

    def _key(self) -> tuple[Type, None | int]:
        return (self._element_type, self._size)

    def _check_val(self, val: Any) -> None:
        # Strings and bytestrings are sequences too, but passing one here is a mistake
        if not isinstance(val, Sequence) or isinstance(val, str | bytes):
            raise TypeError(f"Expected a sequence, got {type(val).__name__}")
        if self._size is not None and len(val) != self._size:
            raise ValueError(f"Expected {self._size} elements, got {len(val)}")

    def _normalize(self, val: Any) -> list[Any]:
        self._check_val(val)
        return [self._element_type._normalize(item) for item in val]

    def _denormalize(self, val: Any) -> list[Any]:
        self._check_val(val)
        return [self._element_type._denormalize(item) for item in val]


class Struct(Type):
    """
    A Solidity struct, or an ABI ``tuple`` in general.

    Values can be passed as sequences, or as mappings if all the fields are named.
    Decoded values are returned as a ``dict`` if all the fields are named,
    and as a ``tuple`` otherwise.
    """

    def __init__(self, fields: Mapping[str, Type] | Sequence[tuple[None | str, Type]]):
        if isinstance(fields, Mapping):
            self._fields: tuple[tuple[None | str, Type], ...] = tuple(fields.items())
        else:
            self._fields = tuple(fields)

        names = [name for name, _tp in self._fields if name is not None]
        if len(names) != len(set(names)):
            raise ValueError("Struct fields must have distinct names")
        self._named = len(names) == len(self._fields)

    @cached_property
    def canonical_form(self) -> str:
        return canonical_signature(tp for _name, tp in self._fields)

    @property
    def dynamic(self) -> bool:
        return any(tp.dynamic for _name, tp in self._fields)

    @property
    def head_size(self) -> int:
        if self.dynamic:
            return 32
        return sum(tp.head_size for _name, tp in self._fields)

    def _key(self) -> tuple[tuple[None | str, Type], ...]:
        # Field order and names both matter
        return self._fields

    def _check_val(self, val: Any) -> None:
        if not isinstance(val, Sequence) or isinstance(val, str | bytes):
            raise TypeError(f"Expected a sequence or a mapping, got {type(val).__name__}")
        if len(val) != len(self._fields):
            raise ValueError(f"Expected {len(self._fields)} elements, got {len(val)}")

    def _normalize(self, val: Any) -> tuple[Any, ...]:
        if isinstance(val, Mapping):
            if not self._named:
                raise TypeError("A struct with anonymous fields cannot be created from a mapping")
            names = [name for name, _tp in self._fields]
            if set(val) != set(names):
                raise ValueError(f"Expected fields {names}, got {list(val)}")
            val = [val[name] for name in names]

        self._check_val(val)
        return tuple(tp._normalize(item) for item, (_name, tp) in zip(val, self._fields))

    def _denormalize(self, val: Any) -> dict[str, Any] | tuple[Any, ...]:
        self._check_val(val)
        items = [(name, tp._denormalize(item)) for item, (name, tp) in zip(val, self._fields)]
        if self._named:
            return {cast("str", name): item for name, item in items}
        return tuple(item for _name, item in items)

    def __str__(self) -> str:
        # Unlike the canonical form, shows the field names
        fields = [str(tp) + ("" if name is None else f" {name}") for name, tp in self._fields]
        return "(" + ", ".join(fields) + ")"


_UINT_RE = re.compile(r"^uint(\d+)$")
_INT_RE = re.compile(r"^int(\d+)$")
_BYTES_RE = re.compile(r"^bytes(\d+)?$")
_ARRAY_RE = re.compile(r"^([\w\d\[\]]*?)(\[(\d+)?\])?$")

_NO_PARAMS: dict[str, Type] = {
    "address": AddressType(),
    "string": String(),
    "bool": Bool(),
}

_ALIASES = {
    "uint": "uint256",
    "int": "int256",
}


def type_from_abi_string(abi_string: str) -> Type:
    """Parses an elementary (non-array, non-tuple) type name."""
    abi_string = _ALIASES.get(abi_string, abi_string)
    if match := _UINT_RE.match(abi_string):
        return UInt(int(match.group(1)))
    if match := _INT_RE.match(abi_string):
        return Int(int(match.group(1)))
    if match := _BYTES_RE.match(abi_string):
        size = match.group(1)
        return Bytes(int(size) if size else None)
    if abi_string in _NO_PARAMS:
        return _NO_PARAMS[abi_string]
    raise ValueError(f"Unknown type: {abi_string}")


def dispatch_type(abi_entry: Mapping[str, Any]) -> Type:
    """Parses the type of a JSON ABI parameter (with ``components`` for tuples)."""
    type_str = abi_entry["type"]
    match = _ARRAY_RE.match(type_str)
    if not match:
        raise ValueError(f"Incorrect type format: {type_str}")

    element_type_name, is_array, array_size = match.groups()

    if is_array:
        # The outermost dimension is the last one: `uint8[2][]` is a dynamic array of `uint8[2]`
        element_type = dispatch_type({**abi_entry, "type": element_type_name})
        return Array(element_type, int(array_size) if array_size is not None else None)
    if element_type_name == "tuple":
        return Struct(dispatch_parameter_types(abi_entry["components"], unique_names=False))
    return type_from_abi_string(element_type_name)


def dispatch_parameter_types(
    abi_entry: Iterable[Mapping[str, Any]], *, unique_names: bool = True
) -> list[tuple[None | str, Type]]:
    """
    Parses a list of JSON ABI parameters (function inputs/outputs or error fields)
    into pairs of optional names and types.
    Empty names are considered anonymous.
    """
    entries = list(abi_entry)
    names = [entry.get("name") or None for entry in entries]
    named = [name for name in names if name is not None]
    if unique_names and len(named) != len(set(named)):
        raise ValueError("All ABI entries must have distinct names")
    return [(name, dispatch_type(entry)) for name, entry in zip(names, entries)]


def canonical_signature(types: Iterable[Type]) -> str:
    return "(" + ",".join(tp.canonical_form for tp in types) + ")"


def encode_args(*types_and_args: tuple[Type, Any]) -> bytes:
    """
    Encodes the values as a sequence of the corresponding ABI types:
    static values in place, dynamic ones as an offset in the head section
    pointing to the length-prefixed contents in the tail section.
    """
    types = [tp for tp, _arg in types_and_args]
    try:
        normalized = [tp._normalize(arg) for tp, arg in types_and_args]
        return eth_abi.encode([tp.canonical_form for tp in types], normalized)
    except (TypeError, ValueError, EncodingError) as exc:
        raise AbiEncodingError(
            f"Could not encode the given values as {canonical_signature(types)}: {exc}"
        ) from exc


def decode_args(types: Sequence[Type], data: bytes) -> tuple[Any, ...]:
    signature = canonical_signature(types)

    head_size = sum(tp.head_size for tp in types)
    if len(data) < head_size:
        raise AbiDecodingError(
            f"Could not decode the return value with the expected signature {signature}: "
            f"expected at least {head_size} bytes, got {len(data)}"
        )

    try:
        values = eth_abi.decode([tp.canonical_form for tp in types], data)
    except (DecodingError, UnicodeDecodeError) as exc:
        raise AbiDecodingError(
            f"Could not decode the return value with the expected signature {signature}: {exc}"
        ) from exc

    try:
        return tuple(tp._denormalize(value) for tp, value in zip(types, values))
    except (TypeError, ValueError) as exc:
        raise AbiDecodingError(f"Unexpected decoded value for {signature}: {exc}") from exc
