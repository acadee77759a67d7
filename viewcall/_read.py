import logging
from collections.abc import Sequence
from typing import Any

import anyio

from ._abi_types import ABI_JSON
from ._contract_abi import ContractABI, Method
from ._entities import Address, Block, BlockLabel
from ._errors import CallContext, translate_error
from ._executor import CallExecutor, CallRequest

logger = logging.getLogger(__name__)


def _to_contract_abi(abi: ContractABI | ABI_JSON) -> ContractABI:
    if isinstance(abi, ContractABI):
        return abi
    return ContractABI.from_json(abi)


def _to_address(address: Address | str) -> Address:
    if isinstance(address, Address):
        return address
    return Address.from_hex(address)


def _to_block(block_number: None | int, block_tag: None | BlockLabel) -> Block:
    if block_number is not None and block_tag is not None:
        raise ValueError("`block_number` and `block_tag` cannot be set at the same time")
    if block_number is not None:
        return block_number
    return block_tag or BlockLabel.LATEST


def resolve_function(
    abi: ContractABI | ABI_JSON, function_name: str, args: Sequence[Any] = ()
) -> Method:
    """
    Selects the read-only function to be called with ``args``.
    See :py:meth:`ContractABI.resolve_method` for details.
    """
    return _to_contract_abi(abi).resolve_method(function_name, args)


def encode_function_data(method: Method, args: Sequence[Any] = ()) -> bytes:
    """Returns the calldata for a call of ``method`` with ``args``."""
    return method.encode_call(args)


def decode_function_result(method: Method, data: bytes) -> Any:
    """
    Decodes the data returned by a call of ``method``.
    See :py:meth:`Method.decode_output` for the shape of the result.
    """
    return method.decode_output(data)


async def read_contract(
    executor: CallExecutor,
    abi: ContractABI | ABI_JSON,
    address: Address | str,
    function_name: str,
    args: Sequence[Any] = (),
    *,
    account: None | Address | str = None,
    block_number: None | int = None,
    block_tag: None | BlockLabel = None,
) -> Any:
    """
    Calls a read-only (``pure`` or ``view``) function of the contract at ``address``
    and returns the decoded result.

    ``abi`` can be a :py:class:`ContractABI` or a JSON ABI.
    ``function_name`` can be a plain name, a full signature, or a hex selector
    (see :py:meth:`ContractABI.resolve_method`).
    If ``account`` is given, it will be used as the sender of the call.
    The call is executed at ``block_number`` or ``block_tag``
    (at most one of them can be given), or at the latest block by default.

    The result is unwrapped if the function has a single output,
    ``None`` if it has none,
    a tuple if all the outputs are anonymous, and a :py:class:`FieldValues` otherwise.

    Resolution and encoding errors are raised as is
    (:py:class:`AbiFunctionNotFoundError`, :py:class:`AbiFunctionOverloadAmbiguousError`,
    :py:class:`AbiEncodingError`), and nothing is sent in that case.
    Failures of the call itself, and errors decoding its result
    (:py:class:`AbiDecodingError`, :py:class:`ContractFunctionZeroDataError`),
    are raised as :py:class:`ContractFunctionExecutionError` with the original error as the cause.
    Cancellation is propagated untouched.
    """
    contract_abi = _to_contract_abi(abi)
    contract_address = _to_address(address)
    args = tuple(args)

    sender = _to_address(account) if account is not None else None

    method = contract_abi.resolve_method(function_name, args)
    request = CallRequest(
        to=contract_address,
        data=encode_function_data(method, args),
        from_=sender,
        block=_to_block(block_number, block_tag),
    )

    logger.debug("Calling %s at %s (block: %s)", method.signature, contract_address, request.block)

    try:
        output = await executor.call(request)
        return decode_function_result(method, output)
    except anyio.get_cancelled_exc_class():
        raise
    except Exception as exc:
        context = CallContext(
            abi=contract_abi,
            address=contract_address,
            function_name=function_name,
            args=args,
            method=method,
            account=sender,
        )
        error = translate_error(exc, context)
        logger.debug("Call to %s at %s failed: %s", method.signature, contract_address, exc)
        raise error from exc
