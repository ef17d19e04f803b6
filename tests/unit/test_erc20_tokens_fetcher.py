"""
Tests for the ERC-20 metadata fetcher.

w3.eth.contract is stubbed per ABI flavour: the standard ABI (string outputs)
and the legacy one (bytes32 outputs).
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from bridge_indexer.app.domain.errors import TokenMetadataFetchError
from bridge_indexer.app.infrastructure.fetchers.erc20_tokens_fetcher import Web3Erc20TokenMetadataFetcher

TOKEN = "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2"

_REVERT = ContractLogicError("execution reverted")


def _fn(result):
    call = AsyncMock(side_effect=result) if isinstance(result, Exception) else AsyncMock(return_value=result)
    return MagicMock(return_value=SimpleNamespace(call=call))


def make_w3(std: dict, legacy: dict | None = None) -> MagicMock:
    legacy = legacy or {}

    def contract(*, address, abi):
        is_legacy = any(o["type"] == "bytes32" for f in abi for o in f["outputs"])
        answers = legacy if is_legacy else std
        return SimpleNamespace(
            functions=SimpleNamespace(**{name: _fn(answers.get(name, _REVERT)) for name in ("name", "symbol", "decimals")})
        )

    w3 = MagicMock()
    w3.eth.contract = MagicMock(side_effect=contract)
    return w3


class TestErc20Fetcher:
    """Standard and legacy ERC-20 answers."""

    @pytest.mark.asyncio
    async def test_standard_token(self):
        w3 = make_w3({"name": "USD Coin", "symbol": "USDC", "decimals": 6})

        metadata = await Web3Erc20TokenMetadataFetcher(w3=w3).fetch(token_address=TOKEN)

        assert (metadata.name, metadata.symbol, metadata.decimals) == ("USD Coin", "USDC", 6)
        assert w3.eth.contract.call_count == 1

    @pytest.mark.asyncio
    async def test_legacy_bytes32_only_for_missing_fields(self):
        w3 = make_w3(
            {"name": BadFunctionCallOutput("cannot decode"), "symbol": BadFunctionCallOutput("x"), "decimals": 18},
            {"name": b"Maker".ljust(32, b"\x00"), "symbol": b"MKR".ljust(32, b"\x00"), "decimals": 99},
        )

        metadata = await Web3Erc20TokenMetadataFetcher(w3=w3).fetch(token_address=TOKEN)

        assert (metadata.name, metadata.symbol, metadata.decimals) == ("Maker", "MKR", 18)

    @pytest.mark.asyncio
    async def test_incomplete_metadata_raises(self):
        w3 = make_w3({"name": "No Decimals", "symbol": "ND"})

        with pytest.raises(TokenMetadataFetchError):
            await Web3Erc20TokenMetadataFetcher(w3=w3).fetch(token_address=TOKEN)

    @pytest.mark.asyncio
    async def test_blank_strings_count_as_missing(self):
        w3 = make_w3({"name": "   ", "symbol": "SYM", "decimals": 8}, {"name": b"\x00" * 32})

        with pytest.raises(TokenMetadataFetchError):
            await Web3Erc20TokenMetadataFetcher(w3=w3).fetch(token_address=TOKEN)

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self):
        w3 = make_w3({"name": ConnectionError("rpc down"), "symbol": "X", "decimals": 1})

        with pytest.raises(ConnectionError):
            await Web3Erc20TokenMetadataFetcher(w3=w3).fetch(token_address=TOKEN)
