from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ._abi_types import AbiDecodingError
from ._contract_abi import (
    LEGACY_ERROR,
    PANIC_ERROR,
    ContractABI,
    Error,
    FieldValues,
    Method,
    UnknownError,
)
from ._entities import Address
from ._executor import TransportError


class ContractPanicReason(Enum):
    """Known codes of ``Panic(uint256)`` reverts inserted by the Solidity compiler."""

    UNKNOWN = -1
    """A code not known to this enum."""

    COMPILER = 0
    """A generic compiler-inserted panic."""

    ASSERTION = 0x01
    """A failed ``assert()``."""

    OVERFLOW = 0x11
    """Arithmetic overflow or underflow outside of an ``unchecked`` block."""

    DIVISION_BY_ZERO = 0x12
    """Division or modulo by zero."""

    INVALID_ENUM_VALUE = 0x21
    """Conversion of an out-of-range value into an ``enum``."""

    INVALID_ENCODING = 0x22
    """Access to an incorrectly encoded storage byte array."""

    EMPTY_ARRAY = 0x31
    """``.pop()`` on an empty array."""

    OUT_OF_BOUNDS = 0x32
    """Out-of-bounds index into an array, ``bytesN`` or an array slice."""

    OUT_OF_MEMORY = 0x41
    """Allocation of too much memory, or of a too large array."""

    ZERO_DEREFERENCE = 0x51
    """Call of a zero-initialized variable of an internal function type."""

    @classmethod
    def from_int(cls, val: int) -> "ContractPanicReason":
        try:
            return cls(val)
        except ValueError:
            return cls.UNKNOWN


class ContractPanic(Exception):
    """A panic raised in a contract call (a ``Panic(uint256)`` revert)."""

    Reason = ContractPanicReason

    code: int
    """The raw panic code."""

    reason: ContractPanicReason
    """Parsed panic reason."""

    @classmethod
    def from_code(cls, code: int) -> "ContractPanic":
        return cls(code, ContractPanicReason.from_int(code))

    def __init__(self, code: int, reason: ContractPanicReason):
        super().__init__(code, reason)
        self.code = code
        self.reason = reason

    def __str__(self) -> str:
        return f"panic 0x{self.code:02x} ({self.reason.name})"


class ContractLegacyError(Exception):
    """
    A raised Solidity legacy error (from ``require()`` or ``revert()``,
    i.e. an ``Error(string)`` revert).
    The message is empty if none was given.
    """

    message: str
    """The error message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or "execution reverted"


class ContractError(Exception):
    """A raised custom Solidity error (from ``revert SomeError(...)``)."""

    error: Error
    """The recognized ABI Error object."""

    data: FieldValues
    """The unpacked error data, corresponding to the ABI."""

    def __init__(self, error: Error, decoded_data: FieldValues):
        super().__init__(error, decoded_data)
        self.error = error
        self.data = decoded_data

    @property
    def name(self) -> str:
        """The name of the error."""
        return self.error.name

    def __str__(self) -> str:
        args = ", ".join(repr(value) for value in self.data.as_tuple)
        return f"{self.error.name}({args})"


class ContractReverted(Exception):
    """
    The execution reverted with a payload that could not be matched
    against the known errors, or could not be decoded.
    """

    data: bytes
    """The raw revert payload."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.data = data

    def __str__(self) -> str:
        return f"execution reverted with unrecognized data 0x{self.data.hex()}"


RevertReason = ContractPanic | ContractLegacyError | ContractError | ContractReverted
"""A decoded reason of a reverted execution."""


@dataclass(frozen=True)
class CallContext:
    """The invocation a failure happened in."""

    abi: ContractABI
    """The ABI the function was resolved in."""

    address: Address
    """The contract address."""

    function_name: str
    """The function name as requested by the caller."""

    args: Sequence[Any]
    """The call arguments."""

    method: None | Method = None
    """The resolved method, if the resolution succeeded."""

    account: None | Address = None
    """The address the call was made from, if given."""


class ContractFunctionError(Exception):
    """The base class for errors raised by contract function invocations."""


class ContractFunctionExecutionError(ContractFunctionError):
    """
    Raised when a read-only contract call fails at the transport or execution level,
    or its result cannot be decoded.
    The original error is available as :py:attr:`cause` (and as ``__cause__``).
    """

    cause: Exception
    """The original low-level error."""

    abi: ContractABI
    """The ABI the function was resolved in."""

    address: Address
    """The contract address."""

    function_name: str
    """The function name as requested by the caller."""

    call_args: tuple[Any, ...]
    """The call arguments."""

    method: None | Method
    """The resolved method."""

    account: None | Address
    """The address the call was made from, if given."""

    reason: None | RevertReason
    """
    The decoded revert reason; ``None`` if the failure was not a revert
    (e.g. the node was unreachable).
    """

    def __init__(self, cause: Exception, context: CallContext, reason: None | RevertReason):
        super().__init__(cause, context, reason)
        self.cause = cause
        self.abi = context.abi
        self.address = context.address
        self.function_name = context.function_name
        self.call_args = tuple(context.args)
        self.method = context.method
        self.account = context.account
        self.reason = reason

    @property
    def reverted(self) -> bool:
        """``True`` if the execution was reverted (as opposed to a transport failure)."""
        return self.reason is not None

    def __str__(self) -> str:
        if self.reason is not None:
            header = (
                f'The contract function "{self.function_name}" reverted '
                f"with the following reason:\n{self.reason}"
            )
        else:
            header = f'The contract function "{self.function_name}" call failed:\n{self.cause}'

        function = self.method.signature if self.method is not None else self.function_name
        args = ", ".join(str(arg) for arg in self.call_args)
        lines = [
            f"  address:   {self.address}",
            f"  function:  {function}",
            f"  args:      ({args})",
        ]
        if self.account is not None:
            lines.append(f"  sender:    {self.account}")
        return f"{header}\n\nContract call:\n" + "\n".join(lines)


def decode_revert_reason(
    abi: ContractABI, data: None | bytes, message: str = ""
) -> None | RevertReason:
    """
    Decodes the revert payload using the builtin ``Error(string)`` and ``Panic(uint256)``
    errors, and the custom errors declared in ``abi``.

    An empty payload together with an ``"execution reverted"`` message
    (produced by ``require(condition)`` or ``revert()``) is treated as an empty legacy error.
    Returns ``None`` if there is no indication of a revert.
    """
    if not data:
        if "execution reverted" in message:
            return ContractLegacyError("")
        return None

    try:
        error, decoded_data = abi.resolve_error(data)
    except (UnknownError, AbiDecodingError):
        return ContractReverted(data)

    if error is PANIC_ERROR:
        return ContractPanic.from_code(decoded_data["code"])
    if error is LEGACY_ERROR:
        return ContractLegacyError(decoded_data["message"])
    return ContractError(error, decoded_data)


def translate_error(error: Exception, context: CallContext) -> ContractFunctionExecutionError:
    """
    Wraps a low-level call failure into a :py:class:`ContractFunctionExecutionError`
    enriched with the invocation context and the decoded revert reason (if any).
    """
    if isinstance(error, TransportError):
        reason = decode_revert_reason(context.abi, error.data, error.message)
    else:
        reason = None
    return ContractFunctionExecutionError(error, context, reason)
