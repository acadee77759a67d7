"""Typed read-only calls of Ethereum contract functions."""

from . import abi
from ._abi_types import ABI_JSON, AbiDecodingError, AbiEncodingError
from ._client import Client, ClientSession
from ._contract_abi import (
    AbiFunctionNotFoundError,
    AbiFunctionOverloadAmbiguousError,
    ContractABI,
    ContractFunctionZeroDataError,
    Error,
    Fields,
    FieldValues,
    Method,
    Mutability,
)
from ._entities import Address, Block, BlockLabel, RPCError, RPCErrorCode
from ._errors import (
    CallContext,
    ContractError,
    ContractFunctionError,
    ContractFunctionExecutionError,
    ContractLegacyError,
    ContractPanic,
    ContractPanicReason,
    ContractReverted,
    RevertReason,
    decode_revert_reason,
    translate_error,
)
from ._executor import CallExecutor, CallRequest, ProviderCallExecutor, TransportError
from ._provider import (
    InvalidResponse,
    ProtocolError,
    Provider,
    ProviderError,
    ProviderSession,
    Unreachable,
)
from ._read import decode_function_result, encode_function_data, read_contract, resolve_function
from .http_provider import HTTPError, HTTPProvider

__all__ = [
    "ABI_JSON",
    "AbiDecodingError",
    "AbiEncodingError",
    "AbiFunctionNotFoundError",
    "AbiFunctionOverloadAmbiguousError",
    "Address",
    "Block",
    "BlockLabel",
    "CallContext",
    "CallExecutor",
    "CallRequest",
    "Client",
    "ClientSession",
    "ContractABI",
    "ContractError",
    "ContractFunctionError",
    "ContractFunctionExecutionError",
    "ContractFunctionZeroDataError",
    "ContractLegacyError",
    "ContractPanic",
    "ContractPanicReason",
    "ContractReverted",
    "Error",
    "FieldValues",
    "Fields",
    "HTTPError",
    "HTTPProvider",
    "InvalidResponse",
    "Method",
    "Mutability",
    "ProtocolError",
    "Provider",
    "ProviderCallExecutor",
    "ProviderError",
    "ProviderSession",
    "RPCError",
    "RPCErrorCode",
    "RevertReason",
    "TransportError",
    "Unreachable",
    "abi",
    "decode_function_result",
    "decode_revert_reason",
    "encode_function_data",
    "read_contract",
    "resolve_function",
    "translate_error",
]
