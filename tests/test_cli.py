import hashlib
from pathlib import Path

import pytest

from ideassets.__main__ import main


def test_cli_aapt2_resolves_fdroid_build_offline(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "aapt2").write_bytes(b"fdroid aapt2")
    (tmp_path / "fdroid.properties").write_text(
        "\n".join(
            [
                "ide.build.fdroid=true",
                "ide.build.fdroid.arch=x86_64",
                "ide.build.fdroid.aapt2File=aapt2",
                f"ide.build.fdroid.aapt2Sha256={hashlib.sha256(b'fdroid aapt2').hexdigest()}",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    exit_code = main(
        [
            "aapt2",
            "x86_64",
            "--offline",
            "--project-dir",
            str(tmp_path),
            "--build-dir",
            str(tmp_path / "build"),
            "--report",
            str(tmp_path / "report.json"),
        ]
    )

    assert exit_code == 0
    assert "x86_64:" in capsys.readouterr().out
    assert (tmp_path / "report.json").exists()
    assert (
        tmp_path / "build" / "intermediates" / "fdroid-aapt2-x86_64" / "data" / "x86_64" / "aapt2"
    ).read_bytes() == b"fdroid aapt2"


def test_cli_aapt2_reports_policy_error_when_offline(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = main(
        [
            "aapt2",
            "arm64-v8a",
            "--offline",
            "--project-dir",
            str(tmp_path),
            "--build-dir",
            str(tmp_path / "build"),
        ]
    )

    assert exit_code == 1
    assert "error[E_POLICY]" in capsys.readouterr().err


def test_cli_stage_copies_file(tmp_path: Path) -> None:
    jar = tmp_path / "tooling-api-all.jar"
    jar.write_bytes(b"PK")

    exit_code = main(["stage", str(jar), "--output-dir", str(tmp_path / "assets")])

    assert exit_code == 0
    assert (tmp_path / "assets" / "data" / "common" / "tooling-api-all.jar").exists()
