"""Shared test fixtures."""

from __future__ import annotations

import pytest

from ideassets.policy import Policy


@pytest.fixture
def fast_policy() -> Policy:
    """Policy without retry back-off so transport failures fail fast."""
    return Policy(retries=1, retry_backoff=0.0, timeout=5.0)

