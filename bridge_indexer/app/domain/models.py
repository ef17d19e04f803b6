from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Literal

Chain = Literal["L1", "L2"]


class AllowListStatus(str, Enum):
    """
    Allow-list status of a token on the base chain.

    The contract emits the Solidity enum as a uint8:
    0 = UNKNOWN, 1 = PROPOSED, 2 = ACCEPTED, 3 = REJECTED.
    """

    UNKNOWN = "UNKNOWN"
    PROPOSED = "PROPOSED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @classmethod
    def from_code(cls, code: int) -> AllowListStatus:
        try:
            return _STATUS_BY_CODE[int(code)]
        except KeyError:
            raise ValueError(f"Unknown allow list status number: {code}") from None

    @property
    def is_resolution(self) -> bool:
        return self in (AllowListStatus.ACCEPTED, AllowListStatus.REJECTED)


_STATUS_BY_CODE: dict[int, AllowListStatus] = {
    0: AllowListStatus.UNKNOWN,
    1: AllowListStatus.PROPOSED,
    2: AllowListStatus.ACCEPTED,
    3: AllowListStatus.REJECTED,
}


class MetadataStatus(str, Enum):
    PRESENT = "present"
    FETCHED = "fetched"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class TokenUpdate:
    """
    Partial update of one row in the tokens table.

    Only fields that are not None are written; a scanner never resets a
    column that another path already filled.
    """

    l1_address: str | None = None
    l2_address: str | None = None

    l1_allow_list_status: AllowListStatus | None = None
    l1_allow_list_proposal_tx: str | None = None
    l1_allow_list_proposer: str | None = None
    l1_allow_list_resolution_tx: str | None = None
    l1_allow_list_approver: str | None = None

    l1_registration_block: int | None = None
    l1_registration_tx: str | None = None
    l1_portal_registration_submitter: str | None = None
    l1_to_l2_message_hash: str | None = None
    l1_to_l2_message_index: int | None = None
    l2_registration_available_block: int | None = None

    l2_registration_block: int | None = None
    l2_registration_tx: str | None = None
    l2_registration_tx_index: int | None = None
    l2_registration_log_index: int | None = None
    l2_portal_registration_submitter: str | None = None
    l2_portal_registration_fee_payer: str | None = None

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def to_json_dict(self) -> dict[str, Any]:
        return {
            k: (v.value if isinstance(v, Enum) else v)
            for k, v in self.changes().items()
        }


@dataclass(frozen=True)
class BlockProgress:
    chain: Chain
    last_scanned_block: int
    last_scan_timestamp: datetime | None


@dataclass(frozen=True)
class ContractInstanceRecord:
    address: str
    original_contract_class_id: str
    current_contract_class_id: str
    initialization_hash: str
    deployment_params: dict[str, Any] = field(default_factory=dict)
    version: int = 1
