from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import pytest

from viewcall import (
    CallExecutor,
    CallRequest,
    ContractABI,
    Provider,
    ProviderSession,
    abi,
)
from viewcall._contract_abi import Error, Method, Mutability
from viewcall._provider import RPC_JSON


class RecordingExecutor(CallExecutor):
    """Returns canned responses and remembers the requests it was given."""

    def __init__(self) -> None:
        self.requests: list[CallRequest] = []
        self._handler: Callable[[CallRequest], bytes] = lambda _request: b""

    def returns(self, data: bytes) -> None:
        self._handler = lambda _request: data

    def fails(self, error: Exception) -> None:
        def handler(_request: CallRequest) -> bytes:
            raise error

        self._handler = handler

    def responds(self, handler: Callable[[CallRequest], bytes]) -> None:
        self._handler = handler

    async def call(self, request: CallRequest) -> bytes:
        self.requests.append(request)
        return self._handler(request)


class RecordingProviderSession(ProviderSession):
    """Returns canned RPC results and remembers the calls it was given."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[RPC_JSON, ...]]] = []
        self.result: RPC_JSON = "0x"
        self.error: None | Exception = None

    async def rpc(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        self.calls.append((method, args))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingProvider(Provider):
    def __init__(self, provider_session: RecordingProviderSession):
        self.provider_session = provider_session

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RecordingProviderSession]:
        yield self.provider_session


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def provider_session() -> RecordingProviderSession:
    return RecordingProviderSession()


@pytest.fixture
def provider(provider_session: RecordingProviderSession) -> RecordingProvider:
    return RecordingProvider(provider_session)


@pytest.fixture
def erc20_abi() -> ContractABI:
    return ContractABI(
        methods=[
            Method(
                name="balanceOf",
                mutability=Mutability.VIEW,
                inputs=dict(owner=abi.address),
                outputs=abi.uint(256),
            ),
            Method(
                name="transfer",
                mutability=Mutability.NONPAYABLE,
                inputs=dict(to=abi.address, amount=abi.uint(256)),
                outputs=abi.bool,
            ),
            Method(
                name="whoami",
                mutability=Mutability.VIEW,
                inputs=[],
                outputs=abi.address,
            ),
        ],
        errors=[
            Error("InsufficientAllowance", dict(allowance=abi.uint(256), needed=abi.uint(256))),
        ],
    )
