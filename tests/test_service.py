import asyncio

import pytest
from web3 import Web3

from web3_search.exceptions import (
    DeadlineExceeded,
    DecodeError,
    RPCError,
    ValidationError,
)
from web3_search.service import TokenQueryService

from tests.conftest import TOKEN, WALLET


class TestGetTokenInfo:
    @pytest.mark.asyncio
    async def test_success(self, service, node):
        """Test token metadata is assembled from the four sub-calls."""
        info = await service.get_token_info(TOKEN)

        assert info.name == "Test Token"
        assert info.symbol == "TEST"
        assert info.decimals == 18
        assert info.total_supply == 1000000000000000000000000
        assert info.address == Web3.to_checksum_address(TOKEN)
        assert node.called_functions() == ["name", "symbol", "decimals", "totalSupply"]

    @pytest.mark.asyncio
    async def test_address_case_is_normalized(self, service):
        """Test upper and lower case spellings give the same address."""
        upper = "0x" + TOKEN[2:].upper()
        lower_info = await service.get_token_info(TOKEN)
        upper_info = await service.get_token_info(upper)
        assert lower_info.address == upper_info.address

    @pytest.mark.asyncio
    async def test_calls_target_token_at_latest_block(self, service, node):
        await service.get_token_info(TOKEN)
        method, params = node.calls[0]
        assert method == "eth_call"
        assert params[0]["to"] == Web3.to_checksum_address(TOKEN)
        assert params[0]["data"] == "0x06fdde03"
        assert params[1] == "latest"

    @pytest.mark.asyncio
    async def test_first_failure_stops_sequence(self, service, node):
        """Test a failing name call aborts before any other sub-call."""
        node.fails("name")

        with pytest.raises(RPCError) as exc_info:
            await service.get_token_info(TOKEN)

        assert exc_info.value.code == RPCError.ERR_REVERTED
        assert node.called_functions() == ["name"]

    @pytest.mark.asyncio
    async def test_out_of_range_decimals(self, service, node):
        node.returns_raw("decimals", (256).to_bytes(32, "big"))

        with pytest.raises(DecodeError) as exc_info:
            await service.get_token_info(TOKEN)

        assert exc_info.value.code == DecodeError.ERR_OUT_OF_RANGE
        assert "totalSupply" not in node.called_functions()

    @pytest.mark.asyncio
    async def test_non_contract_address(self, service, node):
        """Test an empty eth_call result is a decode error, not empty strings."""
        node.returns.clear()

        with pytest.raises(DecodeError):
            await service.get_token_info(TOKEN)

    @pytest.mark.asyncio
    async def test_invalid_address(self, service, node):
        with pytest.raises(ValidationError):
            await service.get_token_info("0x1234")
        assert node.calls == []

    @pytest.mark.asyncio
    async def test_deadline_mid_sequence(self, service, node):
        """Test deadline during decimals aborts and drops fetched fields."""
        node.delays_call("decimals", 1.0)

        with pytest.raises(DeadlineExceeded):
            await service.get_token_info(TOKEN, timeout=0.05)

        assert node.called_functions() == ["name", "symbol", "decimals"]

    @pytest.mark.asyncio
    async def test_default_deadline(self, node, codec):
        service = TokenQueryService(node, codec, default_timeout=0.05)
        node.delays_call("name", 1.0)

        with pytest.raises(DeadlineExceeded):
            await service.get_token_info(TOKEN)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, service, node):
        node.delays_call("symbol", 10.0)
        task = asyncio.create_task(service.get_token_info(TOKEN))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestGetTokenBalance:
    @pytest.mark.asyncio
    async def test_success(self, service, node):
        balance = await service.get_token_balance(TOKEN, WALLET)

        assert balance.balance == 1000000000000000000
        assert balance.decimals == 18
        assert balance.address == Web3.to_checksum_address(WALLET)
        assert balance.token_address == Web3.to_checksum_address(TOKEN)
        assert balance.to_dict()["balance"] == "1000000000000000000"
        assert node.called_functions() == ["balanceOf", "decimals"]

    @pytest.mark.asyncio
    async def test_balance_of_encodes_wallet(self, service, node, codec):
        await service.get_token_balance(TOKEN, WALLET)
        payload = bytes.fromhex(node.calls[0][1][0]["data"][2:])
        assert codec.decode_input("balanceOf", payload) == (
            Web3.to_checksum_address(WALLET),
        )

    @pytest.mark.asyncio
    async def test_balance_of_failure_skips_decimals(self, service, node):
        node.fails("balanceOf", code=-32000, message="header not found")

        with pytest.raises(RPCError) as exc_info:
            await service.get_token_balance(TOKEN, WALLET)

        assert exc_info.value.code == RPCError.ERR_NODE_ERROR
        assert "header not found" in exc_info.value.message
        assert node.called_functions() == ["balanceOf"]

    @pytest.mark.asyncio
    async def test_invalid_wallet(self, service, node):
        with pytest.raises(ValidationError):
            await service.get_token_balance(TOKEN, "not-an-address")
        assert node.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_queries(self, service, node):
        """Test concurrent queries on one connection do not mix answers."""
        node.delays_call("balanceOf", 0.01)
        results = await asyncio.gather(
            service.get_token_balance(TOKEN, WALLET),
            service.get_token_info(TOKEN),
        )
        assert results[0].balance == 10**18
        assert results[1].symbol == "TEST"


class TestGetNativeBalance:
    @pytest.mark.asyncio
    async def test_zero_balance(self, service, node):
        assert await service.get_native_balance(WALLET) == 0
        assert node.calls == [
            ("eth_getBalance", [Web3.to_checksum_address(WALLET), "latest"])
        ]

    @pytest.mark.asyncio
    async def test_large_balance(self, service, node):
        node.balances[Web3.to_checksum_address(WALLET)] = 2**200
        assert await service.get_native_balance(WALLET) == 2**200

    @pytest.mark.asyncio
    async def test_empty_address(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.get_native_balance("")
        assert exc_info.value.code == ValidationError.ERR_EMPTY_ADDRESS
