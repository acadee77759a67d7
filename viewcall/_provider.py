from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ._entities import RPCError
from ._serialization import JSON

RPC_JSON = JSON
"""JSON values of RPC parameters and results."""


class InvalidResponse(Exception):
    """The node responded with something that is not a valid JSON-RPC response."""


class Unreachable(Exception):
    """The node could not be reached."""


class ProtocolError(ABC, Exception):
    """
    The transport reported a failure without a JSON-RPC error object
    that could explain it.
    Subclassed by each provider (e.g. :py:class:`HTTPError`).
    """


@dataclass
class ProviderError(Exception):
    """A JSON-RPC request failed on the provider side."""

    error: RPCError | Unreachable | InvalidResponse | ProtocolError
    """The reason of the failure."""

    def __str__(self) -> str:
        return f"Provider error: {self.error}"


class Provider(ABC):
    """A source of JSON-RPC sessions to an Ethereum node."""

    @abstractmethod
    @asynccontextmanager
    async def session(self) -> AsyncIterator["ProviderSession"]:
        """Opens a session; the connection resources are released on exit."""
        # mypy does not work with abstract generators correctly.
        # See https://github.com/python/mypy/issues/5070
        yield  # type: ignore[misc]


class ProviderSession(ABC):
    """An open connection to a node that JSON-RPC requests are sent through."""

    @abstractmethod
    async def rpc(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        """
        Sends a request with the given method and JSON parameters and returns the result.
        Raises :py:class:`ProviderError` on failure.
        """
        ...
