"""Public package entrypoint for the IDE asset build tooling."""

from .assets import (
    aapt2_requests,
    android_jar_path,
    resolve_aapt2_asset_dirs,
    stage_file_to_assets,
)
from .config import FDroidConfig, load_fdroid_config
from .errors import (
    ConfigError,
    ErrorCode,
    IdeAssetsError,
    IntegrityError,
    PolicyError,
    StorageError,
    TransportError,
    ValidationError,
)
from .fetch import ArtifactFetcher
from .models import AAPT2_CHECKSUMS, ArtifactRequest, CachedArtifact
from .observability import StructuredLogger
from .policy import Policy
from .report import ResolutionReport, ResolvedAssetDir

__all__ = [
    "AAPT2_CHECKSUMS",
    "ArtifactFetcher",
    "ArtifactRequest",
    "CachedArtifact",
    "ConfigError",
    "ErrorCode",
    "FDroidConfig",
    "IdeAssetsError",
    "IntegrityError",
    "Policy",
    "PolicyError",
    "ResolutionReport",
    "ResolvedAssetDir",
    "StorageError",
    "StructuredLogger",
    "TransportError",
    "ValidationError",
    "aapt2_requests",
    "android_jar_path",
    "load_fdroid_config",
    "resolve_aapt2_asset_dirs",
    "stage_file_to_assets",
]
