"""JSON-RPC over HTTP(S), based on `httpx`."""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from http import HTTPStatus
from json import JSONDecodeError
from typing import cast

import httpx

from ._entities import RPCError
from ._provider import (
    RPC_JSON,
    InvalidResponse,
    ProtocolError,
    Provider,
    ProviderError,
    ProviderSession,
    Unreachable,
)
from ._serialization import StructuringError, structure

__all__ = ["HTTPError", "HTTPProvider"]

logger = logging.getLogger(__name__)


class HTTPError(ProtocolError):
    """
    The node responded with a non-200 status
    and no JSON-RPC error object in the body.
    """

    status: HTTPStatus
    """The response status."""

    message: str
    """The response body."""

    def __init__(self, status_code: int, message: str):
        try:
            status = HTTPStatus(status_code)
        except ValueError:  # pragma: no cover
            # Non-standard statuses are not in the enum
            status = HTTPStatus.INTERNAL_SERVER_ERROR

        super().__init__(status, message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return f"HTTP status {self.status}: {self.message}"


def _parse_response(response: httpx.Response) -> RPC_JSON:
    status = response.status_code

    try:
        response_json = response.json()
    except JSONDecodeError as exc:
        raise InvalidResponse(
            f"Expected a JSON response, got HTTP status {status}: {response.text}"
        ) from exc

    if not isinstance(response_json, Mapping):
        raise InvalidResponse(f"RPC response must be a dictionary, got: {response_json}")
    response_json = cast("Mapping[str, RPC_JSON]", response_json)

    # Reverts come with the status 200, and some nodes send errors with other statuses,
    # so the error object takes precedence.
    if "error" in response_json:
        try:
            error = structure(RPCError, response_json["error"])
        except StructuringError as exc:
            raise InvalidResponse(f"Failed to parse an error response: {response_json}") from exc
        raise error

    if status != HTTPStatus.OK:
        raise HTTPError(status, response.text)

    if "result" not in response_json:
        raise InvalidResponse(f"`result` is not present in the response: {response_json}")

    return response_json["result"]


class HTTPProvider(Provider):
    """
    Sends JSON-RPC requests to the node at ``url``.

    ``transport`` replaces the default ``httpx`` transport
    (e.g. with one that retries, or with ``httpx.MockTransport`` in tests).
    """

    def __init__(self, url: str, transport: None | httpx.AsyncBaseTransport = None):
        self._url = url
        self._transport = transport

    @asynccontextmanager
    async def session(self) -> AsyncIterator["HTTPProviderSession"]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            yield HTTPProviderSession(self._url, client)


class HTTPProviderSession(ProviderSession):
    def __init__(self, url: str, http_client: httpx.AsyncClient):
        self._url = url
        self._client = http_client
        self._next_id = 1

    def _make_request(self, method: str, args: tuple[RPC_JSON, ...]) -> RPC_JSON:
        request = {"jsonrpc": "2.0", "method": method, "params": list(args), "id": self._next_id}
        self._next_id += 1
        return request

    async def rpc(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        request = self._make_request(method, args)
        logger.debug("Sending `%s` to %s", method, self._url)

        try:
            response = await self._client.post(self._url, json=request)
        except httpx.TransportError as exc:
            raise ProviderError(Unreachable(str(exc))) from exc

        try:
            return _parse_response(response)
        except (RPCError, InvalidResponse, HTTPError) as exc:
            logger.debug("`%s` failed: %s", method, exc)
            raise ProviderError(exc) from exc
