"""Integrity-enforced artifact fetch with atomic cache placement."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from http.client import HTTPException
from pathlib import Path
from typing import Any, BinaryIO
from urllib.error import URLError
from urllib.request import urlopen

from ideassets.errors import IntegrityError, StorageError, TransportError
from ideassets.models import ArtifactRequest, CachedArtifact
from ideassets.observability import StructuredLogger
from ideassets.policy import Policy, ensure_network_allowed

SOURCE_ERRORS = (URLError, HTTPException, OSError)


class _SourceFailure(Exception):
    """A failure talking to the artifact source; always retryable."""


class ArtifactFetcher:
    """Keeps verified copies of remote artifacts under ``cache_dir``.

    Every artifact lives at ``<cache_dir>/<identifier>/<file_name>``. Content
    only ever reaches that path through ``os.replace`` of a fully written and
    verified temporary file, so readers never observe partial or unverified
    bytes there.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        *,
        policy: Policy | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.policy = policy or Policy()
        self.logger = logger or StructuredLogger()

    def path_for(self, request: ArtifactRequest) -> Path:
        return self.cache_dir / request.identifier / request.file_name

    def fetch(self, request: ArtifactRequest) -> CachedArtifact:
        """Return a verified local copy, downloading only on a cache miss."""
        final_path = self.path_for(request)
        cached = self._load_cached(request, final_path)
        if cached is not None:
            return cached

        ensure_network_allowed(policy=self.policy, operation="fetch")
        _ensure_dir(final_path.parent, identifier=request.identifier)
        temp_path, actual_sha256 = self._download_with_retries(request, final_path.parent)

        if actual_sha256 != request.expected_checksum:
            _discard(temp_path)
            self.logger.log(
                operation="fetch",
                identifier=request.identifier,
                phase="verify",
                message="Downloaded content hash mismatch.",
                level="error",
                extra={"expected": request.expected_checksum, "actual": actual_sha256},
            )
            raise IntegrityError(
                "Fetched content hash mismatch.",
                hint="Update the expected checksum or source URL to a trusted immutable artifact.",
                context={
                    "operation": "fetch",
                    "identifier": request.identifier,
                    "url": request.source_url,
                    "expected": request.expected_checksum,
                    "actual": actual_sha256,
                },
            )

        self._place(temp_path, final_path, identifier=request.identifier)
        return CachedArtifact(
            identifier=request.identifier,
            local_path=final_path,
            verified=True,
            sha256=actual_sha256,
        )

    def fetch_local(self, request: ArtifactRequest, source: str | Path) -> CachedArtifact:
        """Place a pre-supplied local file as the artifact without any network access."""
        source_path = Path(source)
        if not source_path.is_file():
            raise StorageError(
                "Supplied artifact file does not exist or is not a file.",
                hint="Point the local source at an existing regular file.",
                context={
                    "operation": "fetch_local",
                    "identifier": request.identifier,
                    "path": str(source_path),
                },
            )

        actual_sha256 = _sha256_file(
            source_path,
            chunk_size=self.policy.chunk_size,
            identifier=request.identifier,
        )
        verified = self.policy.verify_local
        if verified and actual_sha256 != request.expected_checksum:
            raise IntegrityError(
                "Supplied artifact file hash mismatch.",
                hint="Supply the artifact matching the pinned checksum or update the checksum.",
                context={
                    "operation": "fetch_local",
                    "identifier": request.identifier,
                    "path": str(source_path),
                    "expected": request.expected_checksum,
                    "actual": actual_sha256,
                },
            )

        final_path = self.path_for(request)
        _ensure_dir(final_path.parent, identifier=request.identifier)
        temp_path = _copy_to_temp(source_path, final_path, identifier=request.identifier)
        self._place(temp_path, final_path, identifier=request.identifier)
        self.logger.log(
            operation="fetch_local",
            identifier=request.identifier,
            phase="place",
            message="Placed supplied artifact.",
            extra={"source": str(source_path), "verified": verified},
        )
        return CachedArtifact(
            identifier=request.identifier,
            local_path=final_path,
            verified=verified,
            sha256=actual_sha256,
        )

    def _load_cached(self, request: ArtifactRequest, final_path: Path) -> CachedArtifact | None:
        if not final_path.is_file():
            return None
        actual_sha256 = _sha256_file(
            final_path,
            chunk_size=self.policy.chunk_size,
            identifier=request.identifier,
        )
        if actual_sha256 == request.expected_checksum:
            self.logger.log(
                operation="fetch",
                identifier=request.identifier,
                phase="cache",
                message="Cache hit.",
                extra={"path": str(final_path)},
            )
            return CachedArtifact(
                identifier=request.identifier,
                local_path=final_path,
                verified=True,
                sha256=actual_sha256,
                from_cache=True,
            )

        self.logger.log(
            operation="fetch",
            identifier=request.identifier,
            phase="cache",
            message="Cached artifact hash mismatch; invalidating.",
            level="warning",
            extra={"expected": request.expected_checksum, "actual": actual_sha256},
        )
        try:
            final_path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(
                "Unable to invalidate stale cached artifact.",
                hint="Remove the cache entry manually and retry.",
                context={
                    "operation": "fetch",
                    "identifier": request.identifier,
                    "path": str(final_path),
                },
            ) from exc
        return None

    def _download_with_retries(self, request: ArtifactRequest, entry_dir: Path) -> tuple[Path, str]:
        attempts = self.policy.attempts
        last_error: BaseException | None = None
        for attempt in range(1, attempts + 1):
            self.logger.log(
                operation="fetch",
                identifier=request.identifier,
                phase="download",
                message="Downloading artifact.",
                extra={"url": request.source_url, "attempt": attempt},
            )
            try:
                return self._download_once(request, entry_dir)
            except _SourceFailure as exc:
                last_error = exc.__cause__ or exc
                self.logger.log(
                    operation="fetch",
                    identifier=request.identifier,
                    phase="download",
                    message="Download attempt failed.",
                    level="warning",
                    extra={"attempt": attempt, "error": str(exc)},
                )
                if attempt < attempts and self.policy.retry_backoff > 0:
                    time.sleep(self.policy.retry_backoff * attempt)

        raise TransportError(
            "Artifact source is unreachable.",
            hint="Check network access or switch to a local artifact file.",
            context={
                "operation": "fetch",
                "identifier": request.identifier,
                "url": request.source_url,
                "attempts": str(attempts),
                "error": str(last_error),
            },
        ) from last_error

    def _download_once(self, request: ArtifactRequest, entry_dir: Path) -> tuple[Path, str]:
        temp_path, handle = _open_temp(entry_dir, request.file_name, identifier=request.identifier)
        hasher = hashlib.sha256()
        try:
            with handle:
                with _open_source(request.source_url, timeout=self.policy.timeout) as response:
                    while True:
                        chunk = _read_source(response, self.policy.chunk_size)
                        if not chunk:
                            break
                        hasher.update(chunk)
                        _write_chunk(handle, chunk, temp_path=temp_path, identifier=request.identifier)
        except BaseException:
            _discard(temp_path)
            raise
        return temp_path, hasher.hexdigest()

    def _place(self, temp_path: Path, final_path: Path, *, identifier: str) -> None:
        try:
            temp_path.chmod(0o755)
            os.replace(temp_path, final_path)
        except OSError as exc:
            _discard(temp_path)
            raise StorageError(
                "Unable to place verified artifact.",
                hint="Check that the cache directory is writable.",
                context={"operation": "place", "identifier": identifier, "path": str(final_path)},
            ) from exc
        self.logger.log(
            operation="fetch",
            identifier=identifier,
            phase="place",
            message="Artifact placed.",
            extra={"path": str(final_path)},
        )


def _open_source(url: str, *, timeout: float) -> Any:
    try:
        return urlopen(url, timeout=timeout)  # noqa: S310 - integrity check is mandatory
    except SOURCE_ERRORS as exc:
        raise _SourceFailure(str(exc)) from exc


def _read_source(response: Any, size: int) -> bytes:
    try:
        return response.read(size)
    except SOURCE_ERRORS as exc:
        raise _SourceFailure(str(exc)) from exc


def _ensure_dir(path: Path, *, identifier: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(
            "Unable to create artifact directory.",
            hint="Check that the cache directory is writable.",
            context={"identifier": identifier, "path": str(path)},
        ) from exc


def _open_temp(entry_dir: Path, file_name: str, *, identifier: str) -> tuple[Path, BinaryIO]:
    try:
        fd, name = tempfile.mkstemp(prefix=f".{file_name}.", suffix=".part", dir=entry_dir)
    except OSError as exc:
        raise StorageError(
            "Unable to create temporary artifact file.",
            hint="Check that the cache directory is writable.",
            context={"identifier": identifier, "path": str(entry_dir)},
        ) from exc
    return Path(name), os.fdopen(fd, "wb")


def _write_chunk(handle: BinaryIO, chunk: bytes, *, temp_path: Path, identifier: str) -> None:
    try:
        handle.write(chunk)
    except OSError as exc:
        raise StorageError(
            "Unable to write artifact content.",
            context={"identifier": identifier, "path": str(temp_path)},
        ) from exc


def _copy_to_temp(source: Path, final_path: Path, *, identifier: str) -> Path:
    temp_path, handle = _open_temp(final_path.parent, final_path.name, identifier=identifier)
    try:
        with handle, source.open("rb") as reader:
            shutil.copyfileobj(reader, handle)
    except OSError as exc:
        _discard(temp_path)
        raise StorageError(
            "Unable to copy supplied artifact.",
            context={"identifier": identifier, "source": str(source), "path": str(temp_path)},
        ) from exc
    return temp_path


def _sha256_file(path: Path, *, chunk_size: int, identifier: str) -> str:
    hasher = hashlib.sha256()
    try:
        with path.open("rb") as reader:
            while True:
                chunk = reader.read(chunk_size)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as exc:
        raise StorageError(
            "Unable to read artifact for hashing.",
            context={"identifier": identifier, "path": str(path)},
        ) from exc
    return hasher.hexdigest()


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        # Best effort: a leftover .part file is never read back.
        pass
