from __future__ import annotations

from typing import Any

from web3 import AsyncWeb3, Web3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from bridge_indexer.app.application.services.task_group import run_all_or_cancel
from bridge_indexer.app.domain.errors import TokenMetadataFetchError
from bridge_indexer.app.domain.models import TokenMetadata

# Minimal ERC-20 ABI fragments
_ERC20_ABI_STD = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint8"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
]

_ERC20_ABI_LEGACY = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint256"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
]


class Web3Erc20TokenMetadataFetcher:
    """
    ERC-20 metadata fetcher using AsyncWeb3.

    Reads name(), symbol() and decimals() concurrently. Tokens that answer
    with bytes32 name/symbol (pre-standard ERC-20s) are retried with the
    legacy ABI, only for the missing fields.

    Reverts and undecodable answers count as "missing"; provider/network
    errors propagate to the caller.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def fetch(self, *, token_address: str) -> TokenMetadata:
        # web3 expects checksum hex string
        addr_hex = Web3.to_checksum_address(token_address)

        contract_std: AsyncContract = self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_STD)

        raw_name, raw_symbol, raw_decimals = await run_all_or_cancel(
            self._safe_call(contract_std, "name"),
            self._safe_call(contract_std, "symbol"),
            self._safe_call(contract_std, "decimals"),
        )

        name = self._normalize_symbol_name(raw_name)
        symbol = self._normalize_symbol_name(raw_symbol)
        decimals = self._normalize_decimals(raw_decimals)

        # Fallback to legacy ONLY for missing fields
        # (so a mixed token doesn't get overwritten by worse data)
        if name is None or symbol is None or decimals is None:
            contract_legacy: AsyncContract = self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_LEGACY)

            if name is None:
                name = self._normalize_symbol_name(await self._safe_call(contract_legacy, "name"))
            if symbol is None:
                symbol = self._normalize_symbol_name(await self._safe_call(contract_legacy, "symbol"))
            if decimals is None:
                decimals = self._normalize_decimals(await self._safe_call(contract_legacy, "decimals"))

        if name is None or symbol is None or decimals is None:
            raise TokenMetadataFetchError(
                f"Incomplete ERC-20 metadata for {token_address}: "
                f"name={name!r} symbol={symbol!r} decimals={decimals!r}"
            )

        return TokenMetadata(name=name, symbol=symbol, decimals=decimals)

    @staticmethod
    def _normalize_symbol_name(val: Any) -> str | None:
        if val is None:
            return None

        if isinstance(val, str):
            return val.strip() or None

        if isinstance(val, (bytes, bytearray, memoryview)):
            try:
                return bytes(val).rstrip(b"\x00").decode("utf-8").strip() or None
            except UnicodeDecodeError:
                return None

        return None

    @staticmethod
    def _normalize_decimals(val: Any) -> int | None:
        if isinstance(val, int) and 0 <= val <= 255:
            return int(val)
        return None

    async def _safe_call(self, contract: AsyncContract, fn_name: str) -> Any | None:
        try:
            fn = getattr(contract.functions, fn_name)
            return await fn().call()
        except (BadFunctionCallOutput, ContractLogicError):
            # Non-ERC20, proxy weirdness, revert, or empty response
            return None
