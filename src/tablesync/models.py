"""Core models for tablesync.

Desired configuration uses the camelCase manifest vocabulary
(``attributeDefinitions``, ``keySchema``...); every value type also knows how
to read and write the PascalCase shapes used by the DynamoDB API.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import ValidationError
from .naming import validate_index_name, validate_region, validate_table_name

SCALAR_TYPES = ("S", "N", "B")
KEY_ROLES = ("HASH", "RANGE")
PROJECTION_TYPES = ("ALL", "KEYS_ONLY", "INCLUDE")
STREAM_VIEW_TYPES = ("KEYS_ONLY", "NEW_IMAGE", "OLD_IMAGE", "NEW_AND_OLD_IMAGES")
DEFAULT_STREAM_VIEW_TYPE = "NEW_AND_OLD_IMAGES"
BILLING_MODE = "PAY_PER_REQUEST"


class DeletionPolicy(str, Enum):
    """Whether removal deletes the table or only forgets it."""

    RETAIN = "retain"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Any) -> "DeletionPolicy":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "deletionPolicy", value, "Must be one of: retain, delete"
            ) from None


def _require_list(field_name: str, value: Any) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(field_name, value, "Must be a list")
    return value


def _require_mapping(field_name: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(field_name, value, "Must be a mapping")
    return value


@dataclass(frozen=True)
class AttributeDefinition:
    """A typed attribute used by the table or index key schemas."""

    name: str
    scalar_type: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("attributeDefinitions.name", self.name, "Cannot be empty")
        if self.scalar_type not in SCALAR_TYPES:
            raise ValidationError(
                "attributeDefinitions.scalarType", self.scalar_type, "Must be one of: S, N, B"
            )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "AttributeDefinition":
        d = _require_mapping("attributeDefinitions", d)
        return cls(name=d.get("name", ""), scalar_type=d.get("scalarType", ""))

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "AttributeDefinition":
        return cls(name=d["AttributeName"], scalar_type=d["AttributeType"])

    def to_api(self) -> dict[str, str]:
        return {"AttributeName": self.name, "AttributeType": self.scalar_type}

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "scalarType": self.scalar_type}


@dataclass(frozen=True)
class KeyElement:
    """One element of a key schema (partition or sort key)."""

    attribute_name: str
    role: str

    def __post_init__(self) -> None:
        if not self.attribute_name:
            raise ValidationError("keySchema.attributeName", self.attribute_name, "Cannot be empty")
        if self.role not in KEY_ROLES:
            raise ValidationError("keySchema.role", self.role, "Must be one of: HASH, RANGE")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "KeyElement":
        d = _require_mapping("keySchema", d)
        return cls(attribute_name=d.get("attributeName", ""), role=d.get("role", ""))

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "KeyElement":
        return cls(attribute_name=d["AttributeName"], role=d["KeyType"])

    def to_api(self) -> dict[str, str]:
        return {"AttributeName": self.attribute_name, "KeyType": self.role}

    def to_dict(self) -> dict[str, str]:
        return {"attributeName": self.attribute_name, "role": self.role}


def _parse_key_schema(field_name: str, raw: Any) -> tuple[KeyElement, ...]:
    elements = tuple(KeyElement.from_dict(e) for e in _require_list(field_name, raw))
    roles = [e.role for e in elements]
    if not roles or roles[0] != "HASH" or roles.count("HASH") != 1 or len(roles) > 2:
        raise ValidationError(
            field_name,
            [e.to_dict() for e in elements],
            "Must contain exactly one HASH element first and at most one RANGE element",
        )
    return elements


@dataclass(frozen=True)
class Projection:
    """Attributes copied into a secondary index."""

    projection_type: str = "ALL"
    non_key_attributes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.projection_type not in PROJECTION_TYPES:
            raise ValidationError(
                "projection.projectionType",
                self.projection_type,
                "Must be one of: ALL, KEYS_ONLY, INCLUDE",
            )

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "Projection":
        if not d:
            return cls()
        d = _require_mapping("projection", d)
        return cls(
            projection_type=d.get("projectionType", "ALL"),
            non_key_attributes=tuple(d.get("nonKeyAttributes", ())),
        )

    @classmethod
    def from_api(cls, d: dict[str, Any] | None) -> "Projection":
        if not d:
            return cls()
        return cls(
            projection_type=d.get("ProjectionType", "ALL"),
            non_key_attributes=tuple(d.get("NonKeyAttributes", ())),
        )

    def to_api(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ProjectionType": self.projection_type}
        if self.non_key_attributes:
            result["NonKeyAttributes"] = list(self.non_key_attributes)
        return result

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"projectionType": self.projection_type}
        if self.non_key_attributes:
            result["nonKeyAttributes"] = list(self.non_key_attributes)
        return result


@dataclass(frozen=True)
class SecondaryIndex:
    """A global or local secondary index. Identity is ``index_name``."""

    index_name: str
    key_schema: tuple[KeyElement, ...]
    projection: Projection = field(default_factory=Projection)

    def __post_init__(self) -> None:
        validate_index_name(self.index_name)

    @classmethod
    def from_dict(
        cls, d: dict[str, Any], field_name: str = "globalSecondaryIndexes"
    ) -> "SecondaryIndex":
        d = _require_mapping(field_name, d)
        index_name = d.get("indexName")
        if not isinstance(index_name, str):
            raise ValidationError(f"{field_name}.indexName", index_name, "Must be a string")
        return cls(
            index_name=index_name,
            key_schema=_parse_key_schema(f"{field_name}.keySchema", d.get("keySchema")),
            projection=Projection.from_dict(d.get("projection")),
        )

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "SecondaryIndex":
        return cls(
            index_name=d["IndexName"],
            key_schema=tuple(KeyElement.from_api(e) for e in d.get("KeySchema", [])),
            projection=Projection.from_api(d.get("Projection")),
        )

    def to_api(self) -> dict[str, Any]:
        return {
            "IndexName": self.index_name,
            "KeySchema": [e.to_api() for e in self.key_schema],
            "Projection": self.projection.to_api(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "indexName": self.index_name,
            "keySchema": [e.to_dict() for e in self.key_schema],
            "projection": self.projection.to_dict(),
        }


@dataclass(frozen=True)
class StreamSpec:
    """Change-stream configuration."""

    enabled: bool = False
    view_type: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> "StreamSpec":
        if not d:
            return cls()
        d = _require_mapping("stream", d)
        enabled = d.get("enabled", False)
        if not isinstance(enabled, bool):
            raise ValidationError("stream.enabled", enabled, "Must be true or false")
        view_type = d.get("viewType")
        if enabled and view_type is None:
            view_type = DEFAULT_STREAM_VIEW_TYPE
        if view_type is not None and view_type not in STREAM_VIEW_TYPES:
            raise ValidationError(
                "stream.viewType", view_type, f"Must be one of: {', '.join(STREAM_VIEW_TYPES)}"
            )
        return cls(enabled=enabled, view_type=view_type)

    @classmethod
    def from_api(cls, d: dict[str, Any] | None) -> "StreamSpec":
        if not d:
            return cls()
        return cls(enabled=bool(d.get("StreamEnabled")), view_type=d.get("StreamViewType"))

    def to_api(self) -> dict[str, Any]:
        if not self.enabled:
            return {"StreamEnabled": False}
        return {"StreamEnabled": True, "StreamViewType": self.view_type or DEFAULT_STREAM_VIEW_TYPE}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"enabled": self.enabled}
        if self.view_type is not None:
            result["viewType"] = self.view_type
        return result


@dataclass(frozen=True)
class Replica:
    """A cross-region replica. Identity is ``region_name``."""

    region_name: str

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Replica":
        d = _require_mapping("replicas", d)
        region_name = d.get("regionName", "")
        validate_region(region_name)
        return cls(region_name=region_name)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> "Replica":
        return cls(region_name=d["RegionName"])

    def to_dict(self) -> dict[str, str]:
        return {"regionName": self.region_name}


def _ensure_unique(field_name: str, names: list[str]) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValidationError(field_name, name, "Duplicate entry")
        seen.add(name)


@dataclass(frozen=True)
class DesiredTableConfig:
    """
    Effective desired configuration after defaults have been merged.

    Attributes:
        name: Table name (identity, immutable after the first deploy)
        region: AWS region (identity, immutable after the first deploy)
        attribute_definitions: Attributes referenced by any key schema
        key_schema: Table primary key
        global_secondary_indexes: GSIs, unique by index name
        local_secondary_indexes: LSIs (creation-time only)
        stream: Change-stream configuration
        replicas: Cross-region replicas, unique by region
        deletion_policy: What removal does with the table
    """

    name: str
    region: str
    attribute_definitions: tuple[AttributeDefinition, ...]
    key_schema: tuple[KeyElement, ...]
    global_secondary_indexes: tuple[SecondaryIndex, ...] = ()
    local_secondary_indexes: tuple[SecondaryIndex, ...] = ()
    stream: StreamSpec = field(default_factory=StreamSpec)
    replicas: tuple[Replica, ...] = ()
    deletion_policy: DeletionPolicy = DeletionPolicy.RETAIN

    def __post_init__(self) -> None:
        validate_table_name(self.name)
        validate_region(self.region)

        defined = [a.name for a in self.attribute_definitions]
        _ensure_unique("attributeDefinitions", defined)
        _ensure_unique(
            "globalSecondaryIndexes", [i.index_name for i in self.global_secondary_indexes]
        )
        _ensure_unique(
            "localSecondaryIndexes", [i.index_name for i in self.local_secondary_indexes]
        )
        _ensure_unique("replicas", [r.region_name for r in self.replicas])

        key_elements = list(self.key_schema)
        for index in (*self.global_secondary_indexes, *self.local_secondary_indexes):
            key_elements.extend(index.key_schema)
        for element in key_elements:
            if element.attribute_name not in defined:
                raise ValidationError(
                    "keySchema.attributeName",
                    element.attribute_name,
                    "Key attribute is missing from attributeDefinitions",
                )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "DesiredTableConfig":
        """Build from a fully merged camelCase configuration mapping."""
        return cls(
            name=d.get("name") or "",
            region=d.get("region") or "",
            attribute_definitions=tuple(
                AttributeDefinition.from_dict(a)
                for a in _require_list("attributeDefinitions", d.get("attributeDefinitions"))
            ),
            key_schema=_parse_key_schema("keySchema", d.get("keySchema")),
            global_secondary_indexes=tuple(
                SecondaryIndex.from_dict(i, "globalSecondaryIndexes")
                for i in _require_list("globalSecondaryIndexes", d.get("globalSecondaryIndexes"))
            ),
            local_secondary_indexes=tuple(
                SecondaryIndex.from_dict(i, "localSecondaryIndexes")
                for i in _require_list("localSecondaryIndexes", d.get("localSecondaryIndexes"))
            ),
            stream=StreamSpec.from_dict(d.get("stream")),
            replicas=tuple(
                Replica.from_dict(r) for r in _require_list("replicas", d.get("replicas"))
            ),
            deletion_policy=DeletionPolicy.parse(d.get("deletionPolicy") or "retain"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "region": self.region,
            "attributeDefinitions": [a.to_dict() for a in self.attribute_definitions],
            "keySchema": [e.to_dict() for e in self.key_schema],
            "globalSecondaryIndexes": [i.to_dict() for i in self.global_secondary_indexes],
            "localSecondaryIndexes": [i.to_dict() for i in self.local_secondary_indexes],
            "stream": self.stream.to_dict(),
            "replicas": [r.to_dict() for r in self.replicas],
            "deletionPolicy": self.deletion_policy.value,
        }


@dataclass(frozen=True)
class ObservedTableState:
    """
    The provider's current view of a table, normalized.

    Only ever built from a DescribeTable response, never from desired config.
    """

    arn: str
    name: str
    status: str
    attribute_definitions: tuple[AttributeDefinition, ...] = ()
    key_schema: tuple[KeyElement, ...] = ()
    global_secondary_indexes: tuple[SecondaryIndex, ...] = ()
    stream: StreamSpec = field(default_factory=StreamSpec)
    stream_arn: str | None = None
    replicas: tuple[Replica, ...] = ()

    @classmethod
    def from_api(cls, table: dict[str, Any]) -> "ObservedTableState":
        """Build from the ``Table`` member of a DescribeTable response."""
        return cls(
            arn=table["TableArn"],
            name=table["TableName"],
            status=table.get("TableStatus", "ACTIVE"),
            attribute_definitions=tuple(
                AttributeDefinition.from_api(a) for a in table.get("AttributeDefinitions", [])
            ),
            key_schema=tuple(KeyElement.from_api(e) for e in table.get("KeySchema", [])),
            global_secondary_indexes=tuple(
                SecondaryIndex.from_api(i) for i in table.get("GlobalSecondaryIndexes", [])
            ),
            stream=StreamSpec.from_api(table.get("StreamSpecification")),
            stream_arn=table.get("LatestStreamArn") or None,
            replicas=tuple(Replica.from_api(r) for r in table.get("Replicas", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "arn": self.arn,
            "name": self.name,
            "status": self.status,
            "attributeDefinitions": [a.to_dict() for a in self.attribute_definitions],
            "keySchema": [e.to_dict() for e in self.key_schema],
            "globalSecondaryIndexes": [i.to_dict() for i in self.global_secondary_indexes],
            "stream": self.stream.to_dict(),
            "streamArn": self.stream_arn or False,
            "replicas": [r.to_dict() for r in self.replicas],
        }


@dataclass(frozen=True)
class ReconcileOptions:
    """
    Runtime knobs for a reconciliation run.

    Attributes:
        stream_poll_attempts: DescribeTable calls made while waiting for a stream ARN
        stream_poll_interval: Seconds between those calls
        active_wait_delay: Seconds between readiness checks
        active_wait_attempts: Readiness checks before giving up
        endpoint_url: Optional endpoint (LocalStack or other AWS-compatible services)
    """

    stream_poll_attempts: int = 5
    stream_poll_interval: float = 10.0
    active_wait_delay: int = 20
    active_wait_attempts: int = 25
    endpoint_url: str | None = None

    def __post_init__(self) -> None:
        if self.stream_poll_attempts <= 0:
            raise ValueError("stream_poll_attempts must be positive")
        if self.stream_poll_interval < 0:
            raise ValueError("stream_poll_interval must be non-negative")
        if self.active_wait_delay < 0:
            raise ValueError("active_wait_delay must be non-negative")
        if self.active_wait_attempts <= 0:
            raise ValueError("active_wait_attempts must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ReconcileOptions":
        """Build options, taking ``endpoint_url`` from ``AWS_ENDPOINT_URL`` when unset."""
        values = {k: v for k, v in overrides.items() if v is not None}
        values.setdefault("endpoint_url", os.environ.get("AWS_ENDPOINT_URL") or None)
        return cls(**values)
