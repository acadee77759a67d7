import os

import httpx
import pytest
import trio

from viewcall import (
    Address,
    Client,
    ContractFunctionExecutionError,
    ContractLegacyError,
    ContractPanic,
    HTTPProvider,
    ProviderError,
    ProviderSession,
    RPCError,
    Unreachable,
)
from viewcall._contract_abi import LEGACY_ERROR, PANIC_ERROR
from viewcall._entities import ErrorCode

CONTRACT = Address(os.urandom(20))
OWNER = Address(os.urandom(20))


async def test_read_contract(provider, provider_session, erc20_abi):
    provider_session.result = "0x" + (424122).to_bytes(32, "big").hex()

    client = Client(provider)
    async with client.session() as session:
        balance = await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])

    assert balance == 424122

    ((method, (params, block)),) = provider_session.calls
    assert method == "eth_call"
    assert params == {
        "to": CONTRACT.checksum,
        "data": "0x70a08231" + "00" * 12 + bytes(OWNER).hex(),
    }
    assert block == "latest"


async def test_block_and_account(provider, provider_session, erc20_abi):
    provider_session.result = "0x" + (1).to_bytes(32, "big").hex()

    async with Client(provider).session() as session:
        await session.read_contract(
            erc20_abi, CONTRACT, "balanceOf", [OWNER], account=OWNER, block_number=0x10
        )

    ((_method, (params, block)),) = provider_session.calls
    assert params["from"] == OWNER.checksum
    assert block == "0x10"


async def test_revert(provider, provider_session, erc20_abi):
    data = PANIC_ERROR.selector + PANIC_ERROR.fields.encode([0x12])
    provider_session.error = ProviderError(RPCError(ErrorCode(3), "execution reverted", data))

    async with Client(provider).session() as session:
        with pytest.raises(ContractFunctionExecutionError) as exc_info:
            await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])

    reason = exc_info.value.reason
    assert isinstance(reason, ContractPanic)
    assert reason.reason == ContractPanic.Reason.DIVISION_BY_ZERO


async def test_unreachable(provider, provider_session, erc20_abi):
    provider_session.error = ProviderError(Unreachable("connection refused"))

    async with Client(provider).session() as session:
        with pytest.raises(ContractFunctionExecutionError) as exc_info:
            await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])

    assert not exc_info.value.reverted
    assert "connection refused" in str(exc_info.value)


async def test_timeout(provider, erc20_abi):
    class SlowSession(ProviderSession):
        async def rpc(self, method, *args):
            await trio.sleep(10)
            return "0x"

    provider.provider_session = SlowSession()

    async with Client(provider, timeout=0.01).session() as session:
        with pytest.raises(ContractFunctionExecutionError, match="timed out after 0.01 seconds"):
            await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])


async def test_http_provider(erc20_abi):
    def handler(_request):
        result = "0x" + (424122).to_bytes(32, "big").hex()
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})

    provider = HTTPProvider("http://127.0.0.1:8545", transport=httpx.MockTransport(handler))
    async with Client(provider).session() as session:
        assert session.executor is not None
        balance = await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])

    assert balance == 424122


async def test_http_provider_nested_revert_data(erc20_abi):
    # The revert payload is wrapped in an object, as some development nodes do
    payload = LEGACY_ERROR.selector + LEGACY_ERROR.fields.encode(["insufficient balance"])

    def handler(_request):
        data = {"message": "revert", "data": "0x" + payload.hex()}
        error = {"code": -32603, "message": "Internal error", "data": data}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": error})

    provider = HTTPProvider("http://127.0.0.1:8545", transport=httpx.MockTransport(handler))
    async with Client(provider).session() as session:
        with pytest.raises(ContractFunctionExecutionError) as exc_info:
            await session.read_contract(erc20_abi, CONTRACT, "balanceOf", [OWNER])

    reason = exc_info.value.reason
    assert isinstance(reason, ContractLegacyError)
    assert reason.message == "insufficient balance"
