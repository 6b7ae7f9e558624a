import hashlib
import json
from pathlib import Path

import cbor2

from ideassets.fetch import ArtifactFetcher
from ideassets.models import ArtifactRequest
from ideassets.observability import StructuredLogger
from ideassets.report import ResolutionReport, ResolvedAssetDir


def test_fetch_logs_include_identifier_phase_and_operation(tmp_path: Path) -> None:
    source = tmp_path / "aapt2"
    source.write_bytes(b"payload")
    logger = StructuredLogger()
    fetcher = ArtifactFetcher(tmp_path / "cache", logger=logger)
    request = ArtifactRequest(
        identifier="x86_64",
        source_url=source.as_uri(),
        expected_checksum=hashlib.sha256(b"payload").hexdigest(),
    )

    fetcher.fetch(request)
    fetcher.fetch(request)

    records = logger.records_for("x86_64")
    assert [record["phase"] for record in records] == ["download", "place", "cache"]
    assert all(record["operation"] == "fetch" for record in records)


def test_logs_export_as_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.log(operation="fetch", identifier="x86_64", phase="cache", message="Cache hit.")
    logger.log(
        operation="fetch",
        identifier="arm64-v8a",
        phase="download",
        message="Downloading artifact.",
        extra={"attempt": 1},
    )

    output = logger.to_json_lines(tmp_path / "logs" / "fetch.jsonl")

    lines = output.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["identifier"] for line in lines] == ["x86_64", "arm64-v8a"]
    assert json.loads(lines[1])["extra"] == {"attempt": 1}


def test_resolution_report_exports_json_and_cbor(tmp_path: Path) -> None:
    entry = ResolvedAssetDir(
        flavor="arm64-v8a",
        asset_dir=tmp_path / "aapt2" / "arm64-v8a",
        artifact_path=tmp_path / "aapt2" / "arm64-v8a" / "data" / "arm64-v8a" / "aapt2",
        sha256="a" * 64,
        mode="download",
        verified=True,
    )
    report = ResolutionReport(entries={"arm64-v8a": entry})

    json_payload = json.loads(report.to_json(tmp_path / "report.json"))
    cbor_payload = cbor2.loads(report.to_cbor(tmp_path / "report.cbor"))

    assert json_payload == cbor_payload
    assert json_payload["schema_version"] == 1
    assert json_payload["flavors"]["arm64-v8a"]["sha256"] == "a" * 64
    assert (tmp_path / "report.cbor").read_bytes() == report.to_cbor()
    assert report.asset_dirs() == {"arm64-v8a": entry.asset_dir}
