from __future__ import annotations

import itertools
import logging
from typing import Any

import aiohttp

from bridge_indexer.app.domain.errors import RollupNodeError
from bridge_indexer.app.domain.rollup import (
    ContractClassInfo,
    ContractInstance,
    L1ContractAddresses,
    L2Block,
    LogId,
    PublicLogsPage,
)

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS = frozenset({1})


class AztecNodeClient:
    """
    JSON-RPC client for the rollup node.

    Only the read methods the collector needs are exposed. Responses are
    parsed into the pydantic models of `domain.rollup`, whose field names
    follow node schema version 1.

    Note: the node's log filter `toBlock` is exclusive.
    """

    def __init__(
        self,
        *,
        node_url: str,
        schema_version: int = 1,
        timeout_seconds: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
            raise ValueError(
                f"Unsupported rollup node schema version: {schema_version!r} "
                f"(supported: {sorted(SUPPORTED_SCHEMA_VERSIONS)})"
            )
        self._url = node_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _call(self, method: str, params: list[Any]) -> Any:
        request_json = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        session = await self._get_session()

        async with session.post(self._url, json=request_json) as response:
            response.raise_for_status()
            res_json = await response.json()

        if res_json.get("error") is not None:
            err = res_json["error"]
            raise RollupNodeError(f"{method} failed: {err.get('message', err) if isinstance(err, dict) else err}")
        return res_json.get("result")

    async def get_block_number(self) -> int:
        return int(await self._call("node_getBlockNumber", []))

    async def get_block(self, block_number: int) -> L2Block | None:
        result = await self._call("node_getBlock", [block_number])
        if result is None:
            return None
        return L2Block.model_validate(result)

    async def get_public_logs(
        self,
        *,
        from_block: int,
        to_block: int,
        contract_address: str,
        after_log: LogId | None = None,
    ) -> PublicLogsPage:
        log_filter: dict[str, Any] = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "contractAddress": contract_address,
        }
        if after_log is not None:
            log_filter["afterLog"] = after_log.to_wire()

        logger.debug("node_getPublicLogs filter=%s", log_filter)
        result = await self._call("node_getPublicLogs", [log_filter])
        return PublicLogsPage.model_validate(result)

    async def get_l1_contract_addresses(self) -> L1ContractAddresses:
        return L1ContractAddresses.model_validate(await self._call("node_getL1ContractAddresses", []))

    async def get_contract(self, address: str) -> ContractInstance | None:
        result = await self._call("node_getContract", [address])
        if result is None:
            return None
        return ContractInstance.model_validate(result)

    async def get_contract_class(self, class_id: str) -> ContractClassInfo | None:
        result = await self._call("node_getContractClass", [class_id])
        if result is None:
            return None
        return ContractClassInfo.model_validate(result)
