from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import anyio

from ._entities import Address, Block, BlockLabel, RPCError
from ._provider import RPC_JSON, ProviderError, ProviderSession
from ._serialization import StructuringError, structure, unstructure


@dataclass(frozen=True)
class CallRequest:
    """A read-only call to be executed against a contract."""

    to: Address
    """The address of the contract."""

    data: bytes
    """The calldata (the function selector followed by the encoded arguments)."""

    from_: None | Address = None
    """
    The address the call is made from.
    Affects the result if the function uses ``msg.sender``.
    """

    block: Block = BlockLabel.LATEST
    """The block number or label to execute the call at."""


class TransportError(Exception):
    """
    Raised by a :py:class:`CallExecutor` when the call could not be completed,
    either because the node could not be reached, or because the execution reverted.
    """

    message: str
    """A human-readable description of the failure."""

    data: None | bytes
    """
    The raw payload attached to the failure, if any
    (for reverted executions this is the ABI-encoded revert data).
    """

    cause: None | Exception
    """The lower-level error, if any."""

    def __init__(self, message: str, data: None | bytes = None, cause: None | Exception = None):
        super().__init__(message, data)
        self.message = message
        self.data = data
        self.cause = cause

    def __str__(self) -> str:
        if self.data:
            return f"{self.message} (data: 0x{self.data.hex()})"
        return self.message


class CallExecutor(ABC):
    """
    The boundary to the network layer: executes a call and returns the raw response.

    Implementations are responsible for retries and timeouts,
    and must report any failure as :py:class:`TransportError`.
    """

    @abstractmethod
    async def call(self, request: CallRequest) -> bytes:
        """Executes the call and returns the raw returned data."""
        ...


@contextmanager
def convert_errors() -> Iterator[None]:
    try:
        yield
    except ProviderError as exc:
        error = exc.error
        if isinstance(error, RPCError):
            raise TransportError(error.message, data=error.data, cause=error) from exc
        raise TransportError(str(error), cause=error) from exc
    except StructuringError as exc:
        raise TransportError(f"eth_call: {exc}", cause=exc) from exc


class ProviderCallExecutor(CallExecutor):
    """
    Executes calls via ``eth_call`` in the given provider session.

    If ``timeout`` (in seconds) is given, a call that does not complete in time
    fails with a :py:class:`TransportError`.
    """

    def __init__(self, provider_session: ProviderSession, timeout: None | float = None):
        self._provider_session = provider_session
        self._timeout = timeout

    def _make_params(self, request: CallRequest) -> list[RPC_JSON]:
        tx: dict[str, RPC_JSON] = {
            "to": unstructure(request.to, Address),
            "data": unstructure(request.data),
        }
        if request.from_ is not None:
            tx["from"] = unstructure(request.from_, Address)
        return [tx, unstructure(request.block)]

    async def call(self, request: CallRequest) -> bytes:
        params = self._make_params(request)
        with convert_errors():
            try:
                with anyio.fail_after(self._timeout):
                    result = await self._provider_session.rpc("eth_call", *params)
            except TimeoutError as exc:
                raise TransportError(
                    f"eth_call timed out after {self._timeout} seconds", cause=exc
                ) from exc
            return structure(bytes, result)

