"""Persisted state carried between reconciliation runs."""

import json
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .models import DeletionPolicy

OUTPUT_FIELDS = ("name", "arn", "region", "streamArn")
"""Fields returned to the caller on deploy and remove."""


@dataclass(frozen=True)
class PersistedState:
    """
    Durable record of the managed table.

    Everything else is re-derived by observing the provider on each run.
    An empty state (all ``None``) means nothing has been deployed yet.
    """

    name: str | None = None
    arn: str | None = None
    region: str | None = None
    stream_arn: str | None = None
    deletion_policy: DeletionPolicy | None = None

    @classmethod
    def empty(cls) -> "PersistedState":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self == PersistedState()

    def evolve(self, **changes: Any) -> "PersistedState":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "PersistedState":
        policy = d.get("deletionPolicy")
        return cls(
            name=d.get("name") or None,
            arn=d.get("arn") or None,
            region=d.get("region") or None,
            stream_arn=d.get("streamArn") or None,
            deletion_policy=DeletionPolicy.parse(policy) if policy else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the state record; an empty state serializes to ``{}``."""
        if self.is_empty:
            return {}
        return {
            "name": self.name,
            "arn": self.arn,
            "region": self.region,
            "streamArn": self.stream_arn or False,
            "deletionPolicy": self.deletion_policy.value if self.deletion_policy else None,
        }

    def outputs(self) -> dict[str, Any]:
        """Select the caller-facing output fields."""
        if self.is_empty:
            return {}
        record = self.to_dict()
        return {key: record[key] for key in OUTPUT_FIELDS}


class JsonStateStore:
    """
    Stores a PersistedState as a JSON document on local disk.

    A missing file loads as an empty state. Writes go through a temporary
    file in the same directory and are swapped in with ``os.replace``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> PersistedState:
        if not self.path.exists():
            return PersistedState.empty()
        data = json.loads(self.path.read_text() or "{}")
        return PersistedState.from_dict(data)

    def save(self, state: PersistedState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state.to_dict(), f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise
