from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak


class AbiEventDecoder:
    """
    ABI-based decoder for a single EVM event.

    It:
    - loads ABI from a JSON file,
    - finds the event ABI by name,
    - computes topic0 = keccak("EventName(type1,type2,...)"),
    - decodes indexed args from topics[1:],
    - decodes non-indexed args from `data` with eth_abi.

    Output is a dict keyed by ABI input names. Addresses are lowercase
    0x-strings, bytesN values are bytes, integers are ints.
    """

    def __init__(self, *, abi_path: Path, event_name: str) -> None:
        self._abi = self._load_abi(abi_path)
        self._event_abi = self._find_event(self._abi, event_name)
        self._event_name = event_name
        self._signature = self._event_signature(self._event_abi)
        self._topic0 = keccak(text=self._signature)

        self._inputs: list[dict[str, Any]] = list(self._event_abi.get("inputs", []))
        self._indexed_inputs = [i for i in self._inputs if i.get("indexed") is True]
        self._non_indexed_inputs = [i for i in self._inputs if not i.get("indexed")]

        self._non_indexed_types = [i["type"] for i in self._non_indexed_inputs]
        self._non_indexed_names = [i["name"] for i in self._non_indexed_inputs]

    @property
    def topic0(self) -> bytes:
        return self._topic0

    @property
    def event_name(self) -> str:
        return self._event_name

    @property
    def event_signature(self) -> str:
        return self._signature

    def decode(self, *, topics: Sequence[bytes], data: bytes) -> dict[str, Any] | None:
        if not topics or bytes(topics[0]) != self._topic0:
            return None

        # topic0 + one topic per indexed input
        if len(topics) != len(self._indexed_inputs) + 1:
            return None

        out: dict[str, Any] = {}
        try:
            for inp, topic in zip(self._indexed_inputs, topics[1:], strict=True):
                (val,) = abi_decode([inp["type"]], self._as_bytes32(topic))
                out[inp["name"]] = self._normalize_abi_value(inp["type"], val)

            out.update(self._decode_non_indexed_data(bytes(data)))
        except (DecodingError, ValueError):
            return None

        return out

    # ---------------------------------------------------------------------
    # ABI helpers
    # ---------------------------------------------------------------------

    def _load_abi(self, abi_path: Path) -> list[dict[str, Any]]:
        if not abi_path.exists():
            raise FileNotFoundError(f"ABI file not found: {abi_path}")
        data = json.loads(abi_path.read_text(encoding="utf-8"))

        # Common formats:
        # - [ ... ] (ABI list)
        # - { "abi": [ ... ] } (artifact)
        if isinstance(data, list):
            abi = data
        elif isinstance(data, dict) and isinstance(data.get("abi"), list):
            abi = data["abi"]
        else:
            raise ValueError(
                f"Unsupported ABI JSON format in {abi_path}. Expected list or dict with 'abi' list."
            )

        return [x for x in abi if isinstance(x, dict)]

    def _find_event(self, abi: list[dict[str, Any]], event_name: str) -> dict[str, Any]:
        events = [x for x in abi if x.get("type") == "event" and x.get("name") == event_name]
        if not events:
            names = sorted({x.get("name") for x in abi if x.get("type") == "event"})
            raise ValueError(
                f"Event {event_name!r} not found in ABI. Available events: {names}"
            )
        if len(events) > 1:
            raise ValueError(
                f"Multiple events named {event_name!r} found in ABI. "
                "Disambiguation by full signature is required."
            )
        return events[0]

    def _event_signature(self, event_abi: Mapping[str, Any]) -> str:
        name = event_abi.get("name")
        inputs = event_abi.get("inputs", [])
        if not isinstance(name, str) or not isinstance(inputs, list):
            raise ValueError("Invalid event ABI: missing name/inputs")
        types = []
        for inp in inputs:
            if not isinstance(inp, dict) or "type" not in inp:
                raise ValueError("Invalid event ABI inputs")
            types.append(inp["type"])
        return f"{name}({','.join(types)})"

    def _decode_non_indexed_data(self, data: bytes) -> dict[str, Any]:
        if not self._non_indexed_inputs:
            return {}

        values = abi_decode(self._non_indexed_types, data)

        out: dict[str, Any] = {}
        for name, typ, val in zip(self._non_indexed_names, self._non_indexed_types, values, strict=True):
            out[name] = self._normalize_abi_value(typ, val)
        return out

    # ---------------------------------------------------------------------
    # Topic / ABI value normalization
    # ---------------------------------------------------------------------

    def _as_bytes32(self, b: bytes) -> bytes:
        bb = bytes(b)
        if len(bb) != 32:
            raise ValueError(f"Expected 32 bytes (bytes32 topic), got len={len(bb)}")
        return bb

    def _normalize_abi_value(self, typ: str, val: Any) -> Any:
        if typ == "address":
            # eth_abi returns checksummed str
            if isinstance(val, str):
                return val.lower()
            if isinstance(val, (bytes, bytearray)) and len(val) == 20:
                return "0x" + bytes(val).hex()
            return val

        if typ.startswith("uint") or typ.startswith("int"):
            return int(val)

        if typ.startswith("bytes"):
            if isinstance(val, (bytes, bytearray, memoryview)):
                return bytes(val)
            return val

        return val
