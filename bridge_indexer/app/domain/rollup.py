from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _NodeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class LogId(_NodeModel):
    """Coordinates of a public log: (block, tx index within block, log index within tx)."""

    block_number: int = Field(alias="blockNumber")
    tx_index: int = Field(alias="txIndex")
    log_index: int = Field(alias="logIndex")

    def to_wire(self) -> dict[str, int]:
        return self.model_dump(by_alias=True)


class PublicLog(_NodeModel):
    contract_address: str = Field(alias="contractAddress")
    log_fields: list[str] = Field(alias="fields")
    emitted_length: int = Field(alias="emittedLength")

    @property
    def emitted_fields(self) -> list[int]:
        return [int(f, 16) for f in self.log_fields[: self.emitted_length]]


class ExtendedPublicLog(_NodeModel):
    id: LogId
    log: PublicLog


class PublicLogsPage(_NodeModel):
    logs: list[ExtendedPublicLog]
    max_logs_hit: bool = Field(default=False, alias="maxLogsHit")


class TxEffect(_NodeModel):
    tx_hash: str = Field(alias="txHash")


class L2BlockBody(_NodeModel):
    tx_effects: list[TxEffect] = Field(alias="txEffects")


class L2Block(_NodeModel):
    body: L2BlockBody


class L1ContractAddresses(_NodeModel):
    inbox_address: str = Field(alias="inboxAddress")
    outbox_address: str | None = Field(default=None, alias="outboxAddress")
    registry_address: str | None = Field(default=None, alias="registryAddress")
    rollup_address: str | None = Field(default=None, alias="rollupAddress")


def _parse_point(value: Any) -> dict[str, Any]:
    """
    Point as published by the node: either {x, y, isInfinite} or the hex of
    x || y (optionally followed by an infinity flag byte).
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        if len(raw) not in (64, 65):
            raise ValueError(f"Point must be 64 or 65 bytes, got {len(raw)}")
        x, y = int.from_bytes(raw[:32], "big"), int.from_bytes(raw[32:64], "big")
        infinite = bool(raw[64]) if len(raw) == 65 else (x == 0 and y == 0)
        return {"x": x, "y": y, "isInfinite": infinite}
    raise ValueError(f"Unsupported point encoding: {value!r}")


class NodePoint(_NodeModel):
    x: int
    y: int
    is_infinite: bool = Field(default=False, alias="isInfinite")

    @field_validator("x", "y", mode="before")
    @classmethod
    def _hex_to_int(cls, v: Any) -> Any:
        if isinstance(v, str):
            return int(v, 16)
        return v


class NodePublicKeys(_NodeModel):
    master_nullifier_public_key: NodePoint = Field(alias="masterNullifierPublicKey")
    master_incoming_viewing_public_key: NodePoint = Field(alias="masterIncomingViewingPublicKey")
    master_outgoing_viewing_public_key: NodePoint = Field(alias="masterOutgoingViewingPublicKey")
    master_tagging_public_key: NodePoint = Field(alias="masterTaggingPublicKey")

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        if isinstance(data, str):
            # Four concatenated x || y points
            raw = data[2:] if data.startswith("0x") else data
            if len(raw) != 4 * 128:
                raise ValueError(f"Public keys must be 256 bytes, got {len(raw) // 2}")
            names = (
                "masterNullifierPublicKey",
                "masterIncomingViewingPublicKey",
                "masterOutgoingViewingPublicKey",
                "masterTaggingPublicKey",
            )
            return {name: _parse_point(raw[i * 128 : (i + 1) * 128]) for i, name in enumerate(names)}
        if isinstance(data, dict):
            return {k: _parse_point(v) for k, v in data.items()}
        return data


class ContractInstance(_NodeModel):
    """Contract instance as published on the rollup (node_getContract)."""

    address: str
    version: int = 1
    salt: str
    deployer: str
    original_contract_class_id: str = Field(alias="originalContractClassId")
    current_contract_class_id: str = Field(alias="currentContractClassId")
    initialization_hash: str = Field(alias="initializationHash")
    public_keys: NodePublicKeys = Field(alias="publicKeys")


class ContractClassInfo(_NodeModel):
    """The part of a registered contract class (node_getContractClass) that is stored."""

    id: str
    artifact_hash: str = Field(alias="artifactHash")
    private_functions_root: str | None = Field(default=None, alias="privateFunctionsRoot")
