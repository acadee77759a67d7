import json
from http import HTTPStatus

import httpx
import pytest

from viewcall import (
    HTTPError,
    HTTPProvider,
    InvalidResponse,
    ProviderError,
    RPCError,
    RPCErrorCode,
    Unreachable,
)

URL = "http://127.0.0.1:8545"


def make_provider(handler):
    return HTTPProvider(URL, transport=httpx.MockTransport(handler))


async def test_rpc():
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x01"})

    async with make_provider(handler).session() as session:
        assert await session.rpc("eth_call", {"to": "0x00"}, "latest") == "0x01"
        assert await session.rpc("eth_chainId") == "0x01"

    assert requests == [
        {"jsonrpc": "2.0", "method": "eth_call", "params": [{"to": "0x00"}, "latest"], "id": 1},
        {"jsonrpc": "2.0", "method": "eth_chainId", "params": [], "id": 2},
    ]


async def test_rpc_error():
    def handler(_request):
        error = {"code": 3, "message": "execution reverted", "data": "0x08c379a0"}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": error})

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    error = exc_info.value.error
    assert isinstance(error, RPCError)
    assert error.parsed_code == RPCErrorCode.EXECUTION_ERROR
    assert error.message == "execution reverted"
    assert error.data == b"\x08\xc3\x79\xa0"


async def test_rpc_error_with_nested_data():
    def handler(_request):
        data = {"message": "revert", "data": "0x08c379a0"}
        error = {"code": -32603, "message": "Internal error", "data": data}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": error})

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    error = exc_info.value.error
    assert isinstance(error, RPCError)
    assert error.parsed_code == RPCErrorCode.INTERNAL_ERROR
    assert error.data == b"\x08\xc3\x79\xa0"


async def test_rpc_error_with_http_status():
    # Some providers return an error status along with the JSON error
    def handler(_request):
        error = {"code": -32000, "message": "header not found"}
        return httpx.Response(400, json={"jsonrpc": "2.0", "id": 1, "error": error})

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    error = exc_info.value.error
    assert isinstance(error, RPCError)
    assert error.parsed_code == RPCErrorCode.SERVER_ERROR
    assert error.data is None


async def test_malformed_error():
    def handler(_request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": 3}})

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    assert isinstance(exc_info.value.error, InvalidResponse)
    assert "Failed to parse an error response" in str(exc_info.value.error)


async def test_http_error():
    def handler(_request):
        return httpx.Response(503, json={"jsonrpc": "2.0", "id": 1})

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    error = exc_info.value.error
    assert isinstance(error, HTTPError)
    assert error.status == HTTPStatus.SERVICE_UNAVAILABLE


async def test_invalid_responses():
    responses = iter(
        [
            httpx.Response(200, content=b"not json"),
            httpx.Response(200, json=[1, 2, 3]),
            httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}),
        ]
    )

    def handler(_request):
        return next(responses)

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError, match="Expected a JSON response, got HTTP status 200"):
            await session.rpc("eth_call")
        with pytest.raises(ProviderError, match="RPC response must be a dictionary"):
            await session.rpc("eth_call")
        with pytest.raises(ProviderError, match="`result` is not present in the response"):
            await session.rpc("eth_call")


async def test_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_provider(handler).session() as session:
        with pytest.raises(ProviderError) as exc_info:
            await session.rpc("eth_call")

    assert isinstance(exc_info.value.error, Unreachable)
    assert str(exc_info.value) == "Provider error: connection refused"
