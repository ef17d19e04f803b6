from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from bridge_indexer.app.domain.addresses import L2_ZERO_ADDRESS, normalize_l2_address
from bridge_indexer.app.domain.ports.out import FieldHasher
from bridge_indexer.app.domain.rollup import NodePoint, NodePublicKeys
from bridge_indexer.app.infrastructure.crypto import grumpkin
from bridge_indexer.app.infrastructure.crypto.field_hasher import (
    GeneratorIndex,
    field_from_hex,
    field_to_hex,
    selector_from_signature,
)

# .../bridge_indexer/app/infrastructure/crypto -> .../bridge_indexer/app
DEFAULT_TOKEN_ARTIFACT_PATH = (
    Path(__file__).resolve().parents[2] / "registry" / "artifacts" / "Token.json"
)

TOKEN_CONSTRUCTOR_NAME = "constructor_with_minter"
L2_CONTRACT_DEPLOYMENT_SALT = 0x9876543210


@dataclass(frozen=True)
class Point:
    x: int = 0
    y: int = 0
    is_infinite: bool = True

    @classmethod
    def from_node(cls, point: NodePoint) -> Point:
        return cls(x=point.x, y=point.y, is_infinite=point.is_infinite)

    def to_fields(self) -> list[int]:
        return [self.x, self.y, int(self.is_infinite)]

    def to_affine(self) -> grumpkin.AffinePoint:
        if self.is_infinite:
            return grumpkin.INFINITY
        return grumpkin.AffinePoint(self.x, self.y)

    def to_json(self) -> dict[str, Any]:
        return {"x": field_to_hex(self.x), "y": field_to_hex(self.y), "isInfinite": self.is_infinite}


@dataclass(frozen=True)
class PublicKeys:
    """Master public keys of an instance. Empty keys hash to zero."""

    master_nullifier_public_key: Point = field(default_factory=Point)
    master_incoming_viewing_public_key: Point = field(default_factory=Point)
    master_outgoing_viewing_public_key: Point = field(default_factory=Point)
    master_tagging_public_key: Point = field(default_factory=Point)

    @classmethod
    def empty(cls) -> PublicKeys:
        return cls()

    @classmethod
    def from_node(cls, keys: NodePublicKeys) -> PublicKeys:
        return cls(
            master_nullifier_public_key=Point.from_node(keys.master_nullifier_public_key),
            master_incoming_viewing_public_key=Point.from_node(keys.master_incoming_viewing_public_key),
            master_outgoing_viewing_public_key=Point.from_node(keys.master_outgoing_viewing_public_key),
            master_tagging_public_key=Point.from_node(keys.master_tagging_public_key),
        )

    def _points(self) -> list[Point]:
        return [
            self.master_nullifier_public_key,
            self.master_incoming_viewing_public_key,
            self.master_outgoing_viewing_public_key,
            self.master_tagging_public_key,
        ]

    def is_empty(self) -> bool:
        return all(p.is_infinite for p in self._points())

    def hash(self, hasher: FieldHasher) -> int:
        if self.is_empty():
            return 0
        inputs = [v for p in self._points() for v in p.to_fields()]
        return hasher.hash(inputs, separator=GeneratorIndex.PUBLIC_KEYS_HASH)

    def to_json(self) -> dict[str, Any]:
        return {
            "masterNullifierPublicKey": self.master_nullifier_public_key.to_json(),
            "masterIncomingViewingPublicKey": self.master_incoming_viewing_public_key.to_json(),
            "masterOutgoingViewingPublicKey": self.master_outgoing_viewing_public_key.to_json(),
            "masterTaggingPublicKey": self.master_tagging_public_key.to_json(),
        }


@dataclass(frozen=True)
class DerivedInstance:
    address: str
    contract_class_id: str
    initialization_hash: str
    deployment_params: dict[str, Any]


def compute_address(public_keys: PublicKeys, partial_address: int, hasher: FieldHasher) -> int:
    """
    Address = x-coordinate of preaddress * G + ivpk_m on Grumpkin, where
    preaddress = H(public_keys_hash, partial_address).
    """
    preaddress = hasher.hash(
        [public_keys.hash(hasher), partial_address],
        separator=GeneratorIndex.CONTRACT_ADDRESS_V1,
    )
    point = grumpkin.add(
        grumpkin.mul(grumpkin.GENERATOR, preaddress),
        public_keys.master_incoming_viewing_public_key.to_affine(),
    )
    if point.is_infinite:
        raise ValueError("Address point is at infinity")
    return point.x


# ---------------------------------------------------------------------------
# ABI helpers
# ---------------------------------------------------------------------------


def abi_type_signature(abi_type: Mapping[str, Any]) -> str:
    kind = abi_type["kind"]
    if kind == "field":
        return "Field"
    if kind == "boolean":
        return "bool"
    if kind == "integer":
        prefix = "i" if abi_type.get("sign") == "signed" else "u"
        return f"{prefix}{abi_type['width']}"
    if kind == "string":
        return f"str<{abi_type['length']}>"
    if kind == "array":
        return f"[{abi_type_signature(abi_type['type'])};{abi_type['length']}]"
    if kind == "struct":
        return "(" + ",".join(abi_type_signature(f["type"]) for f in abi_type["fields"]) + ")"
    raise ValueError(f"Unsupported ABI type kind: {kind!r}")


def function_signature(function_abi: Mapping[str, Any]) -> str:
    params = function_abi["abi"]["parameters"]
    return f"{function_abi['name']}({','.join(abi_type_signature(p['type']) for p in params)})"


def _encode_value(abi_type: Mapping[str, Any], value: Any) -> list[int]:
    kind = abi_type["kind"]

    if kind in ("field", "integer"):
        if isinstance(value, str):
            return [field_from_hex(value)]
        return [int(value)]

    if kind == "boolean":
        return [int(bool(value))]

    if kind == "string":
        length = int(abi_type["length"])
        raw = str(value).encode("utf-8")
        if len(raw) > length:
            raise ValueError(f"String {value!r} exceeds str<{length}>")
        # Fixed-length: one field per byte, zero padded
        return list(raw) + [0] * (length - len(raw))

    if kind == "array":
        return [v for item in value for v in _encode_value(abi_type["type"], item)]

    if kind == "struct":
        fields = abi_type["fields"]
        # Address-like single-field structs accept the bare value
        if len(fields) == 1 and not isinstance(value, Mapping):
            return _encode_value(fields[0]["type"], value)
        return [v for f in fields for v in _encode_value(f["type"], value[f["name"]])]

    raise ValueError(f"Unsupported ABI type kind: {kind!r}")


def encode_arguments(function_abi: Mapping[str, Any], args: Sequence[Any]) -> list[int]:
    params = function_abi["abi"]["parameters"]
    if len(params) != len(args):
        raise ValueError(
            f"{function_abi['name']} expects {len(params)} arguments, got {len(args)}"
        )
    return [v for p, a in zip(params, args, strict=True) for v in _encode_value(p["type"], a)]




class TokenContractInstanceDeriver:
    """
    Deterministic derivation of a token contract instance on the rollup.

    The address is a pure function of (constructor, constructor args, salt,
    deployer, contract class id, public keys), all hashes Poseidon2 with a
    leading domain separator:

        args_hash   = H(FUNCTION_ARGS, encoded_args)        (0 without args)
        init_hash   = H(CONSTRUCTOR, selector, args_hash)
        salted      = H(PARTIAL_ADDRESS, salt, init_hash, deployer)
        partial     = H(PARTIAL_ADDRESS, class_id, salted)
        preaddress  = H(CONTRACT_ADDRESS_V1, public_keys_hash, partial)
        address     = (preaddress * G + ivpk_m).x            (Grumpkin)

    The contract class id commits to the compiled bytecode, which the ABI
    artifact shipped here does not carry; callers pass the class id (and the
    public keys) published by the rollup node.
    """

    def __init__(self, *, artifact: Mapping[str, Any], hasher: FieldHasher) -> None:
        self._artifact = dict(artifact)
        self._hasher = hasher
        self._functions: dict[str, Mapping[str, Any]] = {
            f["name"]: f for f in self._artifact.get("functions", [])
        }

    @classmethod
    def from_path(cls, path: Path = DEFAULT_TOKEN_ARTIFACT_PATH, *, hasher: FieldHasher) -> TokenContractInstanceDeriver:
        if not path.exists():
            raise FileNotFoundError(f"Contract artifact not found: {path}")
        return cls(artifact=json.loads(path.read_text(encoding="utf-8")), hasher=hasher)

    @property
    def artifact(self) -> dict[str, Any]:
        return self._artifact

    def function_abi(self, name: str) -> Mapping[str, Any]:
        try:
            return self._functions[name]
        except KeyError:
            raise ValueError(f"Function {name!r} not found in artifact {self._artifact.get('name')!r}") from None

    def function_selector(self, name: str) -> int:
        return selector_from_signature(function_signature(self.function_abi(name)), self._hasher)

    def initialization_hash(self, constructor_name: str, args: Sequence[Any]) -> int:
        encoded = encode_arguments(self.function_abi(constructor_name), args)
        h = self._hasher
        args_hash = h.hash(encoded, separator=GeneratorIndex.FUNCTION_ARGS) if encoded else 0
        return h.hash(
            [self.function_selector(constructor_name), args_hash],
            separator=GeneratorIndex.CONSTRUCTOR,
        )

    def derive(
        self,
        *,
        name: str,
        symbol: str,
        decimals: int,
        portal_address: str,
        contract_class_id: int | str,
        public_keys: PublicKeys | None = None,
        salt: int = L2_CONTRACT_DEPLOYMENT_SALT,
        deployer: str = L2_ZERO_ADDRESS,
    ) -> DerivedInstance:
        public_keys = public_keys or PublicKeys.empty()
        portal = normalize_l2_address(portal_address)
        deployer = normalize_l2_address(deployer)
        class_id = field_from_hex(contract_class_id) if isinstance(contract_class_id, str) else contract_class_id

        constructor_args = [name, symbol, decimals, portal, L2_ZERO_ADDRESS]
        init_hash = self.initialization_hash(TOKEN_CONSTRUCTOR_NAME, constructor_args)

        h = self._hasher
        salted_init_hash = h.hash(
            [salt, init_hash, field_from_hex(deployer)],
            separator=GeneratorIndex.PARTIAL_ADDRESS,
        )
        partial_address = h.hash([class_id, salted_init_hash], separator=GeneratorIndex.PARTIAL_ADDRESS)
        address = compute_address(public_keys, partial_address, h)

        return DerivedInstance(
            address=field_to_hex(address),
            contract_class_id=field_to_hex(class_id),
            initialization_hash=field_to_hex(init_hash),
            deployment_params={
                "constructorArtifact": TOKEN_CONSTRUCTOR_NAME,
                "constructorArgs": constructor_args,
                "salt": field_to_hex(salt),
                "deployer": deployer,
                "publicKeys": public_keys.to_json(),
            },
        )
