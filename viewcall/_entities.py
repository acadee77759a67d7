from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import NewType, TypeVar

from eth_utils import to_canonical_address, to_checksum_address

CustomAddress = TypeVar("CustomAddress", bound="Address")
"""A subclass of :py:class:`Address`."""


class Address:
    """
    An Ethereum address (of a contract or an account).

    Addresses of different subclasses do not compare to each other,
    an attempt to do that raises a ``TypeError``.
    Comparing to a value that is not an address at all (e.g. ``None``) gives ``False``.
    """

    LENGTH = 20
    """The length of an address in bytes."""

    def __init__(self, value: bytes):
        name = type(self).__name__
        if not isinstance(value, bytes):
            raise TypeError(f"{name} must be a bytestring, got {type(value).__name__}")
        if len(value) != self.LENGTH:
            raise ValueError(f"{name} must be {self.LENGTH} bytes long, got {len(value)}")
        self._value = value

    @classmethod
    def from_hex(cls: type[CustomAddress], address_str: str) -> CustomAddress:
        """
        Creates the address from a hex string
        (``0x``-prefixed or not, in any letter case).
        """
        return cls(to_canonical_address(address_str))

    @cached_property
    def checksum(self) -> str:
        """The EIP-55 checksummed hex representation of the address."""
        return to_checksum_address(self._value)

    def __bytes__(self) -> bytes:
        return self._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        if type(self) is not type(other):
            raise TypeError(f"Incompatible types: {type(self).__name__} and {type(other).__name__}")
        return self._value == other._value

    def __str__(self) -> str:
        return self.checksum

    def __repr__(self) -> str:
        return f"{type(self).__name__}.from_hex({self.checksum})"


class BlockLabel(Enum):
    """Named blocks a call can be executed at, instead of a block number."""

    LATEST = "latest"
    """The most recent block in the canonical chain."""

    EARLIEST = "earliest"
    """The genesis block."""

    PENDING = "pending"
    """The block currently being built from the mempool."""

    SAFE = "safe"
    """The most recent block unlikely to be reorganized."""

    FINALIZED = "finalized"
    """The most recent block accepted as final by the network."""


Block = int | BlockLabel
"""A block to execute a call at: its number, or a label."""


class RPCErrorCode(Enum):
    """JSON-RPC error codes with a known meaning."""

    # Not a real code, stands in for anything not listed here.
    UNKNOWN_REASON = 0
    """A code not known to this enum."""

    EXECUTION_ERROR = 3
    """The call was reverted. The revert data, if any, is in the ``data`` field."""

    SERVER_ERROR = -32000
    """
    A generic node-side error.
    Some nodes use it for reverts without data, with the message ``"execution reverted"``.
    """

    INVALID_REQUEST = -32600
    """The request is not a valid JSON-RPC request."""

    METHOD_NOT_FOUND = -32601
    """The node does not support the method."""

    INVALID_PARAMETER = -32602
    """The method parameters are invalid."""

    INTERNAL_ERROR = -32603
    """An internal JSON-RPC error."""

    PARSE_ERROR = -32700
    """The request is not valid JSON."""

    @classmethod
    def from_int(cls, val: int) -> "RPCErrorCode":
        try:
            return cls(val)
        except ValueError:
            return cls.UNKNOWN_REASON


# Unlike other integers in RPC, error codes are sent as JSON numbers, not hex strings.
ErrorCode = NewType("ErrorCode", int)

# Some nodes (e.g. Hardhat or Ganache) wrap the payload as `{"message": ..., "data": "0x..."}`.
ErrorData = NewType("ErrorData", bytes)


@dataclass
class RPCError(Exception):
    """An error object returned by the node in a JSON-RPC response."""

    # Kept as a plain integer, since nodes are free to use their own codes.
    code: ErrorCode
    """The error code."""

    message: str
    """The error message."""

    data: None | ErrorData = None
    """Additional data; for reverted calls this is the ABI-encoded revert payload."""

    @property
    def parsed_code(self) -> RPCErrorCode:
        """The code as a known :py:class:`RPCErrorCode` (if it is one)."""
        return RPCErrorCode.from_int(self.code)

    def __str__(self) -> str:
        suffix = f" (data: 0x{self.data.hex()})" if self.data else ""
        return f"RPC error ({self.code}): {self.message}{suffix}"
