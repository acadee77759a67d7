import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from enum import Enum
from functools import cached_property
from itertools import chain
from typing import Any, Generic, TypeVar, cast

from eth_utils import keccak

from . import abi
from ._abi_types import (
    ABI_JSON,
    AbiDecodingError,
    AbiEncodingError,
    Type,
    decode_args,
    dispatch_parameter_types,
    encode_args,
)

# The number of bytes in a function selector.
SELECTOR_LENGTH = 4

_SELECTOR_RE = re.compile(r"^0x[0-9a-fA-F]{8}$")

# Bare `uint`/`int` in a signature, including as an array element type
_INT_ALIAS_RE = re.compile(r"\b(u?int)(?=[\[,)])")


class FieldValues:
    """
    Decoded values of function outputs or error fields,
    addressable by position and, for named fields, by name.
    """

    def __init__(self, values: Sequence[tuple[str | None, Any]]):
        self._values_seq = list(values)
        self._values_dict = {name: value for name, value in values if name is not None}

        named = sum(1 for name, _value in values if name is not None)
        if named != len(self._values_dict):
            raise ValueError("The values cannot have repeating names")
        self._representable_as_dict = named == len(self._values_seq)

    @property
    def as_dict(self) -> dict[str, Any]:
        """
        The values keyed by field names.
        Raises ``ValueError`` if some of the fields are anonymous.
        """
        if not self._representable_as_dict:
            raise ValueError(
                "This structure has some anonymous fields "
                "and therefore is not representable as a `dict`"
            )
        return self._values_dict

    @cached_property
    def as_tuple(self) -> tuple[Any, ...]:
        """The values in the declaration order."""
        return tuple(item for _name, item in self._values_seq)

    def __getitem__(self, key: str | int) -> Any:
        """Returns the value with the given name or at the given position."""
        if isinstance(key, int):
            return self.as_tuple[key]
        return self._values_dict[key]

    def __getattr__(self, name: str) -> Any:
        """Returns the value with the given name."""
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values_dict[name]
        except KeyError as exc:
            raise AttributeError(name) from exc

    def __len__(self) -> int:
        return len(self._values_seq)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.as_tuple)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldValues) and self._values_seq == other._values_seq

    def __repr__(self) -> str:
        return f"FieldValues({self._values_seq!r})"


class Fields:
    """An ordered list of typed parameters, each of them named or anonymous."""

    names: tuple[str | None, ...]
    """Parameter names (``None`` for anonymous ones)."""

    types: tuple[Type, ...]
    """Parameter types."""

    def __init__(
        self, fields: Mapping[str, Type] | Sequence[Type] | Sequence[tuple[str | None, Type]]
    ):
        names: tuple[str | None, ...]
        if isinstance(fields, Mapping):
            names = tuple(fields)
            types = tuple(fields.values())
        elif all(isinstance(elem, Type) for elem in fields):
            fields = cast("Sequence[Type]", fields)
            names = tuple(None for _tp in fields)
            types = tuple(fields)
        else:
            fields = cast("Sequence[tuple[str | None, Type]]", fields)
            names = tuple(name for name, _tp in fields)
            types = tuple(tp for _name, tp in fields)

        self.names = names
        self.types = types

    def __len__(self) -> int:
        return len(self.types)

    @cached_property
    def canonical_form(self) -> str:
        """The types as they appear in a signature, e.g. ``(address,uint256)``."""
        return "(" + ",".join(tp.canonical_form for tp in self.types) + ")"

    def accepts(self, values: Sequence[Any]) -> bool:
        """
        Returns ``True`` if the number of ``values`` matches the number of fields,
        and every value can be encoded as the corresponding field type.
        """
        return len(values) == len(self.types) and all(
            tp.accepts(value) for tp, value in zip(self.types, values, strict=True)
        )

    def encode(self, values: Sequence[Any]) -> bytes:
        """ABI-encodes positional ``values`` as these parameters."""
        if len(values) != len(self.types):
            raise AbiEncodingError(
                f"Expected {len(self.types)} values for {self.canonical_form}, got {len(values)}"
            )
        return encode_args(*zip(self.types, values, strict=True))

    def decode(self, value_bytes: bytes) -> FieldValues:
        """ABI-decodes ``value_bytes`` as these parameters."""
        return FieldValues(list(zip(self.names, decode_args(self.types, value_bytes), strict=True)))

    def to_json(self) -> ABI_JSON:
        """Returns the JSON ABI representation."""
        return [
            {"name": name if name is not None else "", "type": tp.canonical_form}
            for name, tp in zip(self.names, self.types, strict=True)
        ]

    def __str__(self) -> str:
        fields = ", ".join(
            tp.canonical_form + ((" " + name) if name is not None else "")
            for name, tp in zip(self.names, self.types, strict=True)
        )
        return f"({fields})"


class Mutability(Enum):
    """State mutability of a contract function."""

    PURE = "pure"
    """Neither reads nor writes the contract state."""
    VIEW = "view"
    """Reads, but does not write the contract state."""
    NONPAYABLE = "nonpayable"
    """May write the contract state."""
    PAYABLE = "payable"
    """May write the contract state and receive funds."""

    @classmethod
    def from_json(cls, entry: ABI_JSON) -> "Mutability":
        try:
            return cls(entry)
        except ValueError as exc:
            raise ValueError(f"Unknown mutability identifier: {entry}") from exc

    @classmethod
    def from_legacy_json(cls, method_entry: Mapping[str, Any]) -> "Mutability":
        """
        Infers the mutability from the ``constant``/``payable`` flags
        used in ABIs generated before Solidity 0.4.16.
        """
        if method_entry.get("constant", False):
            return Mutability.VIEW
        if method_entry.get("payable", False):
            return Mutability.PAYABLE
        return Mutability.NONPAYABLE

    @property
    def read_only(self) -> bool:
        """``True`` for ``pure`` and ``view`` functions."""
        return self in {Mutability.PURE, Mutability.VIEW}


class ContractFunctionZeroDataError(AbiDecodingError):
    """
    Raised when a call to a function with declared outputs returned no data.
    This usually means that there is no contract at the target address,
    or the contract does not implement the function.
    """

    def __init__(self, function_name: str):
        super().__init__(
            f'The contract function "{function_name}" returned no data ("0x"), '
            "although it declares outputs"
        )
        self.function_name = function_name


class Method:
    """A function declared in a contract ABI."""

    name: str
    """The function name."""

    inputs: Fields
    """The function parameters."""

    outputs: Fields
    """The return values."""

    mutability: Mutability
    """The declared state mutability."""

    @classmethod
    def from_json(cls, method_entry: ABI_JSON) -> "Method":
        """Creates the method from a JSON ABI entry of type ``function``."""
        method_entry_typed = cast("Mapping[str, Any]", method_entry)

        if method_entry_typed.get("type", "function") != "function":
            raise ValueError("Method object must be created from a JSON entry with type='function'")

        name = method_entry_typed["name"]
        inputs = dispatch_parameter_types(method_entry_typed.get("inputs", []))
        outputs = dispatch_parameter_types(method_entry_typed.get("outputs", []))

        if "stateMutability" in method_entry_typed:
            mutability = Mutability.from_json(method_entry_typed["stateMutability"])
        else:
            mutability = Mutability.from_legacy_json(method_entry_typed)

        return cls(name=name, inputs=inputs, outputs=outputs, mutability=mutability)

    def __init__(
        self,
        name: str,
        mutability: Mutability,
        inputs: Mapping[str, Type] | Sequence[Type] | Sequence[tuple[str | None, Type]],
        outputs: None
        | Mapping[str, Type]
        | Sequence[Type]
        | Sequence[tuple[str | None, Type]]
        | Type = None,
    ):
        self.name = name
        self.inputs = Fields(inputs)
        self.mutability = mutability

        if outputs is None:
            outputs = []
        if isinstance(outputs, Type):
            outputs = [(None, outputs)]

        self.outputs = Fields(outputs)

    @property
    def read_only(self) -> bool:
        """``True`` if the method is ``pure`` or ``view``."""
        return self.mutability.read_only

    @cached_property
    def signature(self) -> str:
        """The name followed by the canonical input types, e.g. ``balanceOf(address)``."""
        return self.name + self.inputs.canonical_form

    @cached_property
    def selector(self) -> bytes:
        """The first 4 bytes of the Keccak-256 hash of the signature."""
        return keccak(self.signature.encode())[:SELECTOR_LENGTH]

    def encode_call(self, args: Sequence[Any]) -> bytes:
        """Returns the calldata for a call with given arguments (the selector included)."""
        return self.selector + self.inputs.encode(args)

    def decode_output(self, output_bytes: bytes) -> Any:
        """
        Decodes the data returned by a call of this method.

        The result is ``None`` for a method without outputs,
        the value itself for a single output,
        a tuple if none of the outputs are named,
        and a :py:class:`FieldValues` otherwise.
        Empty data for a method with outputs raises :py:class:`ContractFunctionZeroDataError`.
        """
        if not self.outputs.types:
            return None

        if not output_bytes:
            raise ContractFunctionZeroDataError(self.name)

        results = self.outputs.decode(output_bytes)

        if len(self.outputs.names) == 1:
            return results.as_tuple[0]
        if all(name is None for name in self.outputs.names):
            return results.as_tuple

        return results

    def to_json(self) -> ABI_JSON:
        """Returns the JSON ABI representation."""
        return {
            "type": "function",
            "name": self.name,
            "stateMutability": self.mutability.value,
            "inputs": self.inputs.to_json(),
            "outputs": self.outputs.to_json(),
        }

    def __str__(self) -> str:
        returns = "" if not self.outputs.names else f" returns {self.outputs}"
        return f"function {self.name}{self.inputs} {self.mutability.value}{returns}"


class Error:
    """An error declared in a contract ABI (raised with ``revert SomeError(...)``)."""

    name: str
    """The error name."""

    fields: Fields
    """The error parameters."""

    @classmethod
    def from_json(cls, error_entry: ABI_JSON) -> "Error":
        """Creates the error from a JSON ABI entry of type ``error``."""
        error_entry_typed = cast("Mapping[str, Any]", error_entry)

        if error_entry_typed["type"] != "error":
            raise ValueError("Error object must be created from a JSON entry with type='error'")

        name = error_entry_typed["name"]
        fields = dispatch_parameter_types(error_entry_typed.get("inputs", []))

        return cls(name=name, fields=fields)

    def __init__(
        self,
        name: str,
        fields: Mapping[str, Type] | Sequence[Type] | Sequence[tuple[str | None, Type]],
    ):
        self.name = name
        self.fields = Fields(fields)

    @cached_property
    def signature(self) -> str:
        """The name followed by the canonical field types, e.g. ``Error(string)``."""
        return self.name + self.fields.canonical_form

    @cached_property
    def selector(self) -> bytes:
        """The first 4 bytes of the Keccak-256 hash of the signature."""
        return keccak(self.signature.encode())[:SELECTOR_LENGTH]

    def decode_fields(self, data_bytes: bytes) -> FieldValues:
        """Decodes the revert payload that follows the selector."""
        return self.fields.decode(data_bytes)

    def to_json(self) -> ABI_JSON:
        """Returns the JSON ABI representation."""
        return {
            "type": "error",
            "name": self.name,
            "inputs": self.fields.to_json(),
        }

    def __str__(self) -> str:
        return f"error {self.name}{self.fields}"


MethodType = TypeVar("MethodType")


class Methods(Generic[MethodType]):
    """
    Bases: ``Generic`` [``MethodType``].

    ABI items accessible as attributes by name.
    """

    def __init__(self, methods_dict: Mapping[str, MethodType]):
        self._methods_dict = methods_dict

    def __getattr__(self, method_name: str) -> MethodType:
        """Returns the item by name."""
        if method_name.startswith("_"):
            raise AttributeError(method_name)
        try:
            return self._methods_dict[method_name]
        except KeyError as exc:
            raise AttributeError(method_name) from exc

    def __contains__(self, method_name: str) -> bool:
        return method_name in self._methods_dict

    def __iter__(self) -> Iterator[MethodType]:
        """Returns the iterator over all items."""
        return iter(self._methods_dict.values())


PANIC_ERROR = Error("Panic", dict(code=abi.uint(256)))


LEGACY_ERROR = Error("Error", dict(message=abi.string))


class UnknownError(Exception):
    """Raised when the error data does not correspond to any error known to the ABI."""


class AbiFunctionNotFoundError(Exception):
    """Raised when no function in the ABI matches the requested name and arguments."""

    def __init__(self, function_name: str, details: str = ""):
        message = f"Function `{function_name}` not found in the ABI"
        if details:
            message += f": {details}"
        super().__init__(message)
        self.function_name = function_name


class AbiFunctionOverloadAmbiguousError(Exception):
    """
    Raised when several overloads of a function accept the given arguments.
    Pass the full signature (e.g. ``"f(uint256)"``) as the function name to choose one.
    """

    def __init__(self, function_name: str, candidates: Sequence[Method]):
        signatures = ", ".join(method.signature for method in candidates)
        super().__init__(
            f"Several overloads of `{function_name}` accept the given arguments: {signatures}"
        )
        self.function_name = function_name
        self.candidates = tuple(candidates)


class ContractABI:
    """
    A wrapper for contract ABI.

    Contract functions and errors are accessible via the attributes below.
    Other entries (constructor, events, fallback and receive methods)
    are not used in read-only calls and are skipped.
    """

    method: Methods[tuple[Method, ...]]
    """Contract's functions, grouped by name in the declaration order."""

    error: Methods[Error]
    """Contract's errors."""

    @classmethod
    def from_json(cls, json_abi: ABI_JSON) -> "ContractABI":
        """Creates this object from a JSON ABI (e.g. generated by a Solidity compiler)."""
        json_abi_typed = cast("Sequence[Mapping[str, ABI_JSON]]", json_abi)

        methods = []
        errors = []

        for entry in json_abi_typed:
            # Entries without a type are functions
            entry_type = entry.get("type", "function")

            if entry_type == "function":
                methods.append(Method.from_json(entry))
            elif entry_type == "error":
                errors.append(Error.from_json(entry))
            elif entry_type in ("constructor", "event", "fallback", "receive"):
                continue
            else:
                raise ValueError(f"Unknown ABI entry type: {entry_type}")

        return cls(methods=methods, errors=errors)

    def __init__(
        self,
        methods: None | Iterable[Method] = None,
        errors: None | Iterable[Error] = None,
    ):
        overloads: dict[str, list[Method]] = {}
        signatures = set()
        for method in methods or []:
            if method.signature in signatures:
                raise ValueError(f"ABI contains more than one declaration of `{method.signature}`")
            signatures.add(method.signature)
            overloads.setdefault(method.name, []).append(method)

        errors_dict = {}
        for error in errors or []:
            if error.name in errors_dict:
                raise ValueError(f"ABI contains more than one declaration of `{error.name}`")
            errors_dict[error.name] = error

        self._overloads = {name: tuple(group) for name, group in overloads.items()}
        self.method = Methods(self._overloads)
        self.error = Methods(errors_dict)

        self._error_by_selector = {
            error.selector: error for error in chain([PANIC_ERROR, LEGACY_ERROR], self.error)
        }

    @property
    def methods(self) -> tuple[Method, ...]:
        """All the methods in the ABI."""
        return tuple(chain.from_iterable(self.method))

    def _find_by_signature(self, function_name: str) -> Method:
        if _SELECTOR_RE.match(function_name):
            selector = bytes.fromhex(function_name[2:])
            for method in self.methods:
                if method.selector == selector:
                    return method
        else:
            signature = _INT_ALIAS_RE.sub(r"\g<1>256", "".join(function_name.split()))
            for method in self.methods:
                if method.signature == signature:
                    return method
        raise AbiFunctionNotFoundError(function_name)

    def resolve_method(self, function_name: str, args: Sequence[Any]) -> Method:
        """
        Finds the read-only method to be called with ``args``.

        ``function_name`` can be the plain name of the method,
        its full signature (e.g. ``"balanceOf(address)"``; ``uint`` and ``int`` are accepted
        as aliases of ``uint256`` and ``int256``),
        or the ``0x``-prefixed hex selector.
        If the method is overloaded, the overload is selected by the number of arguments,
        and then by whether the argument values can be encoded as the input types.
        """
        if _SELECTOR_RE.match(function_name) or "(" in function_name:
            candidates: Sequence[Method] = [self._find_by_signature(function_name)]
        elif function_name in self._overloads:
            candidates = self._overloads[function_name]
        else:
            raise AbiFunctionNotFoundError(function_name)

        candidates = [method for method in candidates if method.read_only]
        if not candidates:
            raise AbiFunctionNotFoundError(
                function_name, "it is not declared as `pure` or `view`"
            )

        available = ", ".join(method.signature for method in candidates)
        candidates = [method for method in candidates if len(method.inputs) == len(args)]
        if not candidates:
            raise AbiFunctionNotFoundError(
                function_name,
                f"no read-only overload takes {len(args)} argument(s) (available: {available})",
            )
        if len(candidates) == 1:
            # Any type mismatches will be reported by the encoder.
            return candidates[0]

        compatible = [method for method in candidates if method.inputs.accepts(args)]
        if not compatible:
            raise AbiFunctionNotFoundError(
                function_name,
                "the arguments do not match any of "
                + ", ".join(method.signature for method in candidates),
            )
        if len(compatible) > 1:
            raise AbiFunctionOverloadAmbiguousError(function_name, compatible)
        return compatible[0]

    def resolve_error(self, error_data: bytes) -> tuple[Error, FieldValues]:
        """
        Given the packed error data, attempts to find the error in the ABI
        and decode the data into its fields.
        """
        if len(error_data) < SELECTOR_LENGTH:
            raise UnknownError("Error data too short to contain a selector")

        selector, data = error_data[:SELECTOR_LENGTH], error_data[SELECTOR_LENGTH:]

        if selector in self._error_by_selector:
            error = self._error_by_selector[selector]
            decoded = error.decode_fields(data)
            return error, decoded

        raise UnknownError(f"Could not find an error with selector {selector.hex()} in the ABI")

    def to_json(self) -> ABI_JSON:
        """Returns the serialized list of contract items (methods and errors)."""
        return [item.to_json() for item in chain(self.methods, self.error)]

    def __str__(self) -> str:
        indent = "    "
        item_list = [indent + str(item) for item in chain(self.methods, self.error)]
        return "{\n" + "\n".join(item_list) + "\n}"
