"""Per-flavor resolution report and export helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import cbor2

from ideassets.models import SourceMode


@dataclass(frozen=True, slots=True)
class ResolvedAssetDir:
    flavor: str
    asset_dir: Path
    artifact_path: Path
    sha256: str
    mode: SourceMode
    verified: bool
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class ResolutionReport:
    entries: dict[str, ResolvedAssetDir] = field(default_factory=dict)
    schema_version: int = 1

    def asset_dirs(self) -> dict[str, Path]:
        return {flavor: entry.asset_dir for flavor, entry in sorted(self.entries.items())}

    def to_json(self, path: str | Path | None = None) -> str:
        payload = self._payload()
        encoded = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        payload = self._payload()
        encoded = cbor2.dumps(payload, canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "flavors": {
                flavor: {
                    "asset_dir": str(entry.asset_dir),
                    "artifact_path": str(entry.artifact_path),
                    "sha256": entry.sha256,
                    "mode": entry.mode,
                    "verified": entry.verified,
                    "from_cache": entry.from_cache,
                }
                for flavor, entry in sorted(self.entries.items())
            },
        }
