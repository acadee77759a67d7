from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from ._abi_types import ABI_JSON
from ._contract_abi import ContractABI
from ._entities import Address, BlockLabel
from ._executor import ProviderCallExecutor
from ._provider import Provider, ProviderSession
from ._read import read_contract


class Client:
    """
    A client for read-only contract calls.

    If ``timeout`` (in seconds) is given, it is applied to every call.
    """

    def __init__(self, provider: Provider, timeout: None | float = None):
        self._provider = provider
        self._timeout = timeout

    @asynccontextmanager
    async def session(self) -> AsyncIterator["ClientSession"]:
        """Opens a session to the client allowing the backend to optimize sequential requests."""
        async with self._provider.session() as provider_session:
            yield ClientSession(provider_session, timeout=self._timeout)


class ClientSession:
    """
    An open session to the provider.

    The methods of this class may raise the following exceptions:
    :py:class:`AbiFunctionNotFoundError`,
    :py:class:`AbiFunctionOverloadAmbiguousError`,
    :py:class:`AbiEncodingError`,
    :py:class:`ContractFunctionExecutionError` (which also wraps decoding errors).
    """

    def __init__(self, provider_session: ProviderSession, timeout: None | float = None):
        self._executor = ProviderCallExecutor(provider_session, timeout=timeout)

    @property
    def executor(self) -> ProviderCallExecutor:
        """The call executor used by this session."""
        return self._executor

    async def read_contract(
        self,
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
        Calls a read-only function of a contract and returns the decoded result.
        See :py:func:`read_contract` for details.
        """
        return await read_contract(
            self._executor,
            abi,
            address,
            function_name,
            args,
            account=account,
            block_number=block_number,
            block_tag=block_tag,
        )
