import hashlib
from pathlib import Path

import pytest

from ideassets.errors import IntegrityError, StorageError
from ideassets.fetch import ArtifactFetcher
from ideassets.models import ArtifactRequest
from ideassets.policy import Policy


def test_fetch_local_places_verified_copy_without_network(tmp_path: Path) -> None:
    source, digest = _write_binary(tmp_path / "fdroid" / "aapt2", b"fdroid aapt2")
    fetcher = ArtifactFetcher(tmp_path / "out", policy=Policy(network_mode="offline"))
    request = _request("arm64-v8a", digest)

    artifact = fetcher.fetch_local(request, source)

    assert artifact.verified is True
    assert artifact.local_path == tmp_path / "out" / "arm64-v8a" / "aapt2"
    assert artifact.local_path.read_bytes() == b"fdroid aapt2"
    assert source.exists()


def test_fetch_local_missing_file_raises_storage_error(tmp_path: Path) -> None:
    fetcher = ArtifactFetcher(tmp_path / "out")

    with pytest.raises(StorageError) as excinfo:
        fetcher.fetch_local(_request("arm64-v8a", "0" * 64), tmp_path / "missing-aapt2")

    assert excinfo.value.context["operation"] == "fetch_local"
    assert not (tmp_path / "out").exists()


def test_fetch_local_directory_source_raises_storage_error(tmp_path: Path) -> None:
    source_dir = tmp_path / "aapt2"
    source_dir.mkdir()

    with pytest.raises(StorageError):
        ArtifactFetcher(tmp_path / "out").fetch_local(_request("x86_64", "0" * 64), source_dir)


def test_fetch_local_verifies_digest_by_default(tmp_path: Path) -> None:
    source, _ = _write_binary(tmp_path / "aapt2", b"tampered")
    fetcher = ArtifactFetcher(tmp_path / "out")
    request = _request("armeabi-v7a", "1" * 64)

    with pytest.raises(IntegrityError):
        fetcher.fetch_local(request, source)

    assert not fetcher.path_for(request).exists()


def test_fetch_local_can_trust_supplied_file_when_verification_disabled(tmp_path: Path) -> None:
    source, digest = _write_binary(tmp_path / "aapt2", b"self-built aapt2")
    fetcher = ArtifactFetcher(tmp_path / "out", policy=Policy(verify_local=False))

    artifact = fetcher.fetch_local(_request("x86_64", "1" * 64), source)

    assert artifact.verified is False
    assert artifact.sha256 == digest
    assert artifact.local_path.read_bytes() == b"self-built aapt2"


def test_fetch_local_replaces_existing_copy(tmp_path: Path) -> None:
    source, digest = _write_binary(tmp_path / "aapt2", b"new aapt2")
    fetcher = ArtifactFetcher(tmp_path / "out")
    request = _request("x86_64", digest)
    existing = fetcher.path_for(request)
    existing.parent.mkdir(parents=True)
    existing.write_bytes(b"old aapt2")

    artifact = fetcher.fetch_local(request, source)

    assert artifact.local_path.read_bytes() == b"new aapt2"
    assert sorted(path.name for path in existing.parent.iterdir()) == ["aapt2"]


def _request(identifier: str, checksum: str) -> ArtifactRequest:
    return ArtifactRequest(
        identifier=identifier,
        source_url=f"file:///opt/fdroid/aapt2-{identifier}",
        expected_checksum=checksum,
    )


def _write_binary(path: Path, payload: bytes) -> tuple[Path, str]:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path, hashlib.sha256(payload).hexdigest()
