"""F-Droid build configuration read from ``fdroid.properties``."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from ideassets.errors import ConfigError
from ideassets.models import AAPT2_CHECKSUMS

PROPERTIES_FILE_NAME = "fdroid.properties"

PROP_FDROID_BUILD = "ide.build.fdroid"
PROP_FDROID_BUILD_ARCH = "ide.build.fdroid.arch"
PROP_FDROID_BUILD_VERSION = "ide.build.fdroid.version"
PROP_FDROID_BUILD_VERCODE = "ide.build.fdroid.vercode"
PROP_FDROID_AAPT2FILE = "ide.build.fdroid.aapt2File"
PROP_FDROID_AAPT2SHA256 = "ide.build.fdroid.aapt2Sha256"

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_WHITESPACE = " \t\f"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")


@dataclass(frozen=True, slots=True)
class FDroidConfig:
    has_read: bool = False
    fdroid_build: bool = False
    build_arch: str | None = None
    version_name: str | None = None
    version_code: int | None = None
    aapt2_file: Path | None = None
    aapt2_sha256: str | None = None

    @property
    def is_fdroid_build(self) -> bool:
        return self.has_read and self.fdroid_build

    def require_aapt2_source(self) -> tuple[str, Path]:
        """Return the supported architecture and aapt2 file of an F-Droid build."""
        if self.build_arch is None:
            raise ConfigError(
                "F-Droid build does not name an architecture.",
                hint=f"Set `{PROP_FDROID_BUILD_ARCH}` in {PROPERTIES_FILE_NAME}.",
            )
        if self.build_arch not in AAPT2_CHECKSUMS:
            raise ConfigError(
                f"F-Droid arch '{self.build_arch}' is not supported.",
                hint=f"Supported architectures: {', '.join(sorted(AAPT2_CHECKSUMS))}.",
                context={"arch": self.build_arch},
            )
        if self.aapt2_file is None:
            raise ConfigError(
                "F-Droid build does not name an aapt2 file.",
                hint=f"Set `{PROP_FDROID_AAPT2FILE}` in {PROPERTIES_FILE_NAME}.",
                context={"arch": self.build_arch},
            )
        return self.build_arch, self.aapt2_file


def load_fdroid_config(project_root: str | Path) -> FDroidConfig:
    props_path = Path(project_root) / PROPERTIES_FILE_NAME
    if not props_path.is_file():
        return FDroidConfig(has_read=True, fdroid_build=False)

    try:
        raw = props_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            "Unable to read F-Droid properties.",
            context={"path": str(props_path)},
        ) from exc
    properties = parse_properties(raw)

    aapt2_file = properties.get(PROP_FDROID_AAPT2FILE)
    return FDroidConfig(
        has_read=True,
        fdroid_build=properties.get(PROP_FDROID_BUILD, "").lower() == "true",
        build_arch=properties.get(PROP_FDROID_BUILD_ARCH),
        version_name=properties.get(PROP_FDROID_BUILD_VERSION),
        version_code=_optional_int(properties, PROP_FDROID_BUILD_VERCODE, path=props_path),
        aapt2_file=Path(project_root) / aapt2_file if aapt2_file else None,
        aapt2_sha256=properties.get(PROP_FDROID_AAPT2SHA256) or None,
    )


def parse_properties(raw: str) -> dict[str, str]:
    """Parse text in the ``java.util.Properties`` format.

    A key ends at its first unescaped ``=``, ``:`` or whitespace. Backslash
    escapes (``\\uXXXX``, ``\\t``, ``\\=`` and so on) are decoded in keys and
    values, trailing whitespace of a value is kept, and a line ending in an odd
    number of backslashes continues on the next line. Later keys override
    earlier ones.
    """
    properties: dict[str, str] = {}
    for logical in _logical_lines(raw):
        key, value = _split_entry(logical)
        properties[_unescape(key)] = _unescape(value)
    return properties


def _logical_lines(raw: str) -> Iterator[str]:
    pending: str | None = None
    for line in _LINE_BREAK.split(raw):
        stripped = line.lstrip(_WHITESPACE)
        if pending is None and (not stripped or stripped[0] in "#!"):
            continue
        if _continues(stripped):
            pending = (pending or "") + stripped[:-1]
            continue
        yield (pending or "") + stripped
        pending = None
    if pending:
        yield pending


def _continues(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_entry(logical: str) -> tuple[str, str]:
    index = 0
    while index < len(logical):
        char = logical[index]
        if char == "\\":
            index += 2
            continue
        if char in "=:" or char in _WHITESPACE:
            break
        index += 1
    rest = logical[index:].lstrip(_WHITESPACE)
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(_WHITESPACE)
    return logical[:index], rest


def _unescape(text: str) -> str:
    if "\\" not in text:
        return text
    chars: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char != "\\":
            chars.append(char)
            index += 1
            continue
        code = text[index + 1 : index + 2]
        if code == "u":
            digits = text[index + 2 : index + 6]
            if not _HEX4.fullmatch(digits):
                raise ConfigError(
                    "Malformed \\uxxxx escape in properties.",
                    context={"text": text},
                )
            chars.append(chr(int(digits, 16)))
            index += 6
            continue
        chars.append(_ESCAPES.get(code, code))
        index += 2
    return "".join(chars)


def _optional_int(properties: dict[str, str], key: str, *, path: Path) -> int | None:
    value = properties.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(
            f"Invalid `{key}` value.",
            hint="Version codes must be integers.",
            context={"path": str(path), "value": value},
        ) from exc
