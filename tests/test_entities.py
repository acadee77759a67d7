import os

import pytest

from viewcall import Address, BlockLabel, RPCError, RPCErrorCode
from viewcall._entities import ErrorCode


def test_address():
    random_addr = b"dv\xbbCQ,\xfe\xd0\xbfF\x8aq\x07OK\xf9\xa1i\x88("
    random_addr_checksum = "0x6476Bb43512CFed0bF468a71074F4bF9A1698828"

    random_addr2 = os.urandom(20)

    assert bytes(Address(random_addr)) == random_addr
    assert bytes(Address.from_hex(random_addr_checksum)) == random_addr
    assert bytes(Address.from_hex(random_addr_checksum.lower())) == random_addr

    assert Address(random_addr).checksum == random_addr_checksum

    assert Address(random_addr) == Address(random_addr)
    assert Address(random_addr) != Address(os.urandom(20))

    class MyAddress(Address):
        pass

    assert str(Address(random_addr)) == random_addr_checksum
    assert repr(Address(random_addr)) == f"Address.from_hex({random_addr_checksum})"
    assert repr(MyAddress(random_addr)) == f"MyAddress.from_hex({random_addr_checksum})"

    # The type is hashable
    addr_set = {Address(random_addr), Address(random_addr2), Address(random_addr)}
    assert addr_set == {Address(random_addr), Address(random_addr2)}

    with pytest.raises(TypeError, match="Address must be a bytestring, got str"):
        Address(random_addr_checksum)

    with pytest.raises(ValueError, match="Address must be 20 bytes long, got 19"):
        Address(random_addr[:-1])

    with pytest.raises(TypeError, match="Incompatible types: MyAddress and Address"):
        # For whatever reason the the values are switched places in `__eq__()`
        assert Address(random_addr) == MyAddress(random_addr)

    # Non-address values are simply not equal
    assert Address(random_addr) != None  # noqa: E711
    assert Address(random_addr) != random_addr

    # This error comes from eth_utils, we don't care about the phrasing,
    # but want to detect if the type changes.
    with pytest.raises(ValueError):  # noqa: PT011
        Address.from_hex(random_addr_checksum[:-1])


def test_block_label():
    assert BlockLabel("latest") == BlockLabel.LATEST
    assert [label.value for label in BlockLabel] == [
        "latest",
        "earliest",
        "pending",
        "safe",
        "finalized",
    ]


def test_rpc_error():
    error = RPCError(ErrorCode(3), "execution reverted", b"\x01\x02")
    assert error.parsed_code == RPCErrorCode.EXECUTION_ERROR
    assert str(error) == "RPC error (3): execution reverted (data: 0x0102)"

    error = RPCError(ErrorCode(-32000), "header not found")
    assert error.parsed_code == RPCErrorCode.SERVER_ERROR
    assert str(error) == "RPC error (-32000): header not found"

    # Provider-specific codes are kept as is
    error = RPCError(ErrorCode(-39001), "unknown block")
    assert error.code == -39001
    assert error.parsed_code == RPCErrorCode.UNKNOWN_REASON
