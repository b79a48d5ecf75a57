"""Desired configuration: manifest loading, defaults and identity rules."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigImmutabilityError, ValidationError
from .models import DesiredTableConfig
from .naming import generate_table_name, resolve_region
from .state import PersistedState

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "name": None,
    "region": None,
    "attributeDefinitions": [{"name": "id", "scalarType": "S"}],
    "keySchema": [{"attributeName": "id", "role": "HASH"}],
    "globalSecondaryIndexes": [],
    "localSecondaryIndexes": [],
    "stream": {"enabled": False},
    "replicas": [],
    "deletionPolicy": "retain",
}

ALLOWED_KEYS = frozenset(DEFAULTS)


def merge_deep_right(left: dict[str, Any], right: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``right`` over ``left``.

    Nested mappings are merged recursively; any other value from ``right``
    (including lists) replaces the value from ``left``. Neither input is
    modified.
    """
    result = copy.deepcopy(left)
    for key, value in right.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_deep_right(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_manifest(path: str | Path) -> dict[str, Any]:
    """
    Read a raw desired configuration from a YAML or JSON file.

    An empty file is an empty configuration (all defaults).
    """
    path = Path(path)
    text = path.read_text()
    if path.suffix == ".json":
        data = json.loads(text) if text.strip() else {}
    else:
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("manifest", str(path), "Top level must be a mapping")
    return data


def resolve_config(
    raw: dict[str, Any] | None,
    state: PersistedState,
    name_factory: Callable[[], str] = generate_table_name,
) -> DesiredTableConfig:
    """
    Merge a raw desired configuration over defaults and enforce identity rules.

    Args:
        raw: Desired configuration (camelCase keys), possibly empty.
        state: State recorded by the previous successful run.
        name_factory: Produces a name when none is configured or persisted.

    Returns:
        The effective DesiredTableConfig.

    Raises:
        ValidationError: If the configuration is malformed.
        ConfigImmutabilityError: If name or region differ from the persisted identity.
    """
    raw = raw or {}
    unknown = sorted(set(raw) - ALLOWED_KEYS)
    if unknown:
        raise ValidationError("manifest", unknown, "Unknown configuration keys")

    merged = merge_deep_right(DEFAULTS, raw)

    desired_name = merged.get("name")
    if not desired_name and not state.name:
        merged["name"] = name_factory()
        logger.info("No table name configured, generated %s", merged["name"])
    elif not desired_name:
        merged["name"] = state.name
    elif state.name and desired_name != state.name:
        raise ConfigImmutabilityError("name", state.name, desired_name)

    if not raw.get("region") and state.region:
        # A table that is already deployed stays where it is.
        merged["region"] = state.region
    else:
        merged["region"] = resolve_region(merged.get("region"))
    if state.region and merged["region"] != state.region:
        raise ConfigImmutabilityError("region", state.region, merged["region"])

    return DesiredTableConfig.from_dict(merged)
