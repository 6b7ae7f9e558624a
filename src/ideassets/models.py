"""Core typed dataclasses for artifact requests and resolved artifacts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from ideassets.errors import ValidationError

Aapt2Flavor = Literal["arm64-v8a", "armeabi-v7a", "x86_64"]
SourceMode = Literal["download", "local"]

AAPT2_FILE_NAME = "aapt2"

AAPT2_CHECKSUMS: dict[str, str] = {
    "arm64-v8a": "be2cea61814678f7a9e61bf818a6666e6097a7d67d6c19498a4d7aa690bc4151",
    "armeabi-v7a": "ba3413c680933dffd3c3d35da8d450c474ff5ccab95c4b9db28841c53b7a3cdf",
    "x86_64": "4861171c1efcffe41f4466937e6a392b243ffb014813b4e60f0b77bb46ab254d",
}

AAPT2_URL_TEMPLATE = (
    "https://github.com/AndroidIDEOfficial/platform-tools/releases/download/"
    "v34.0.4/aapt2-{identifier}"
)

SHA256_PATTERN = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True, slots=True)
class ArtifactRequest:
    """A named binary to fetch from ``source_url`` and pin to ``expected_checksum``."""

    identifier: str
    source_url: str
    expected_checksum: str
    file_name: str = AAPT2_FILE_NAME

    def __post_init__(self) -> None:
        _require_path_segment(self.identifier, field_name="identifier")
        _require_path_segment(self.file_name, field_name="file_name")
        if not self.source_url:
            raise ValidationError(
                "ArtifactRequest requires a source URL.",
                context={"identifier": self.identifier},
            )
        checksum = self.expected_checksum.lower()
        if not SHA256_PATTERN.fullmatch(checksum):
            raise ValidationError(
                "ArtifactRequest checksum must be a 64-character hex SHA-256 digest.",
                context={"identifier": self.identifier, "checksum": self.expected_checksum},
            )
        object.__setattr__(self, "expected_checksum", checksum)


@dataclass(frozen=True, slots=True)
class CachedArtifact:
    identifier: str
    local_path: Path
    verified: bool
    sha256: str
    from_cache: bool = False


def _require_path_segment(value: str, *, field_name: str) -> None:
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise ValidationError(
            f"ArtifactRequest {field_name} must be a single non-empty path segment.",
            context={field_name: value},
        )
