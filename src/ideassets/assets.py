"""Resolve per-flavor aapt2 asset directories and stage files into assets."""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ideassets.config import FDroidConfig
from ideassets.errors import ConfigError, StorageError
from ideassets.fetch import ArtifactFetcher
from ideassets.models import (
    AAPT2_CHECKSUMS,
    AAPT2_URL_TEMPLATE,
    ArtifactRequest,
    CachedArtifact,
    SourceMode,
)
from ideassets.observability import StructuredLogger
from ideassets.policy import Policy
from ideassets.report import ResolutionReport, ResolvedAssetDir

DEFAULT_BASE_ASSETS_PATH = "data/common"


def aapt2_requests(
    flavors: Iterable[str],
    *,
    checksums: Mapping[str, str] = AAPT2_CHECKSUMS,
    url_template: str = AAPT2_URL_TEMPLATE,
) -> list[ArtifactRequest]:
    """Build one request per flavor from the pinned checksum table."""
    requests: list[ArtifactRequest] = []
    for flavor in flavors:
        checksum = checksums.get(flavor)
        if checksum is None:
            raise ConfigError(
                f"Checksum for aapt2-{flavor} not found.",
                hint="Pin a checksum for every product flavor.",
                context={"flavor": flavor},
            )
        requests.append(
            ArtifactRequest(
                identifier=flavor,
                source_url=url_template.format(identifier=flavor),
                expected_checksum=checksum,
            )
        )
    return requests


def resolve_aapt2_asset_dirs(
    flavors: Iterable[str],
    *,
    build_dir: str | Path,
    fdroid: FDroidConfig | None = None,
    policy: Policy | None = None,
    logger: StructuredLogger | None = None,
    checksums: Mapping[str, str] = AAPT2_CHECKSUMS,
    url_template: str = AAPT2_URL_TEMPLATE,
    max_workers: int | None = None,
) -> ResolutionReport:
    """Return the generated asset source directory holding aapt2 for each flavor.

    Regular builds download every flavor's binary in parallel. F-Droid builds
    never touch the network: the configured local binary is verified and placed
    for each flavor instead.
    """
    build_root = Path(build_dir)
    selected = tuple(dict.fromkeys(flavors))
    policy = policy or Policy()
    logger = logger or StructuredLogger()
    if fdroid is not None and fdroid.is_fdroid_build:
        return _resolve_fdroid(
            selected,
            build_root=build_root,
            fdroid=fdroid,
            policy=policy,
            logger=logger,
        )

    requests = aapt2_requests(selected, checksums=checksums, url_template=url_template)
    entries: dict[str, ResolvedAssetDir] = {}
    if not requests:
        return ResolutionReport(entries=entries)

    fetchers = {
        request.identifier: ArtifactFetcher(
            _download_asset_dir(build_root, request.identifier) / "data",
            policy=policy,
            logger=logger,
        )
        for request in requests
    }
    with ThreadPoolExecutor(max_workers=max_workers or len(requests)) as executor:
        futures = {
            request.identifier: executor.submit(fetchers[request.identifier].fetch, request)
            for request in requests
        }
        for flavor, future in futures.items():
            artifact = future.result()
            entries[flavor] = _entry(
                asset_dir=_download_asset_dir(build_root, flavor),
                artifact=artifact,
                mode="download",
            )
    return ResolutionReport(entries=entries)


def _resolve_fdroid(
    flavors: tuple[str, ...],
    *,
    build_root: Path,
    fdroid: FDroidConfig,
    policy: Policy,
    logger: StructuredLogger,
) -> ResolutionReport:
    arch, aapt2_file = fdroid.require_aapt2_source()
    # The supplied binary is built for a single arch and is pinned to that arch's digest.
    expected_checksum = fdroid.aapt2_sha256 or AAPT2_CHECKSUMS[arch]
    entries: dict[str, ResolvedAssetDir] = {}
    for flavor in flavors:
        asset_dir = build_root / "intermediates" / f"fdroid-aapt2-{flavor}"
        try:
            if asset_dir.exists():
                shutil.rmtree(asset_dir)
        except OSError as exc:
            raise StorageError(
                "Unable to clear F-Droid asset directory.",
                context={"operation": "fdroid_aapt2", "path": str(asset_dir)},
            ) from exc
        local_request = ArtifactRequest(
            identifier=flavor,
            source_url=aapt2_file.resolve().as_uri(),
            expected_checksum=expected_checksum,
        )
        fetcher = ArtifactFetcher(asset_dir / "data", policy=policy, logger=logger)
        artifact = fetcher.fetch_local(local_request, aapt2_file)
        entries[flavor] = _entry(asset_dir=asset_dir, artifact=artifact, mode="local")
    return ResolutionReport(entries=entries)


def _download_asset_dir(build_root: Path, flavor: str) -> Path:
    return build_root / "intermediates" / "aapt2" / flavor


def _entry(*, asset_dir: Path, artifact: CachedArtifact, mode: SourceMode) -> ResolvedAssetDir:
    return ResolvedAssetDir(
        flavor=artifact.identifier,
        asset_dir=asset_dir,
        artifact_path=artifact.local_path,
        sha256=artifact.sha256,
        mode=mode,
        verified=artifact.verified,
        from_cache=artifact.from_cache,
    )


def stage_file_to_assets(
    input_file: str | Path,
    *,
    output_dir: str | Path,
    base_assets_path: str = DEFAULT_BASE_ASSETS_PATH,
    file_name: str | None = None,
) -> Path:
    """Copy ``input_file`` to ``<output_dir>/<base_assets_path>/<name>``."""
    source = Path(input_file)
    if not source.is_file():
        raise StorageError(
            "Asset input file does not exist or is not a file.",
            context={"operation": "stage_file", "path": str(source)},
        )
    target = Path(output_dir) / base_assets_path / (file_name or source.name)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
    except OSError as exc:
        raise StorageError(
            "Unable to stage asset file.",
            hint="Check that the asset output directory is writable.",
            context={"operation": "stage_file", "source": str(source), "path": str(target)},
        ) from exc
    return target


def android_jar_path(sdk_dir: str | Path, compile_sdk: int | str) -> Path:
    """Locate ``android.jar`` for ``compile_sdk`` inside an Android SDK."""
    jar = Path(sdk_dir) / "platforms" / f"android-{compile_sdk}" / "android.jar"
    if not jar.is_file():
        raise StorageError(
            "android.jar not found in SDK.",
            hint="Install the matching SDK platform package.",
            context={"operation": "android_jar", "path": str(jar)},
        )
    return jar
