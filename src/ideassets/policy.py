"""Fetcher configuration and enforcement helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ideassets.errors import PolicyError, ValidationError

NetworkMode = Literal["online", "offline"]


@dataclass(frozen=True, slots=True)
class Policy:
    network_mode: NetworkMode = "online"
    retries: int = 2
    retry_backoff: float = 0.5
    timeout: float = 60.0
    verify_local: bool = True
    chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValidationError("Policy.retries must be zero or positive.")
        if self.timeout <= 0:
            raise ValidationError("Policy.timeout must be positive.")
        if self.chunk_size <= 0:
            raise ValidationError("Policy.chunk_size must be positive.")

    @property
    def attempts(self) -> int:
        return self.retries + 1


def ensure_network_allowed(*, policy: Policy, operation: str) -> None:
    if policy.network_mode == "offline":
        raise PolicyError(
            "Network operations are disabled by policy.",
            hint="Switch policy.network_mode to 'online' or supply a local file.",
            context={"operation": operation},
        )
