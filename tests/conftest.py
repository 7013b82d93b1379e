"""Shared test fixtures for azure-rest.

Provides fixtures that isolate the process environment from the developer's
real Azure settings, manage the global output state, build tokens and run
CLI commands. pytest discovers them automatically.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from azure_rest.config import (
    ENV_AUTHORITY_HOST,
    ENV_AZURE_REST_DEBUG,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_DEBUG,
    ENV_FEDERATED_TOKEN_FILE,
    ENV_IDENTITY_ENDPOINT,
    ENV_MANAGED_IDENTITY_ENDPOINT,
    ENV_TENANT_ID,
)
from azure_rest.models import AccessToken, utcnow
from azure_rest.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager binds sys.stdout/sys.stderr when it is created. Once a
    test that redirected those streams finishes, the bound references are
    stale, so a fresh manager must be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every identity variable azure-rest reads.

    Tests set exactly the variables they need on top of a blank slate, so a
    logged-in developer machine or a CI runner with Azure secrets never
    leaks into the results.
    """
    for var in [
        ENV_TENANT_ID,
        ENV_CLIENT_ID,
        ENV_CLIENT_SECRET,
        ENV_FEDERATED_TOKEN_FILE,
        ENV_AUTHORITY_HOST,
        ENV_MANAGED_IDENTITY_ENDPOINT,
        ENV_IDENTITY_ENDPOINT,
        ENV_DEBUG,
        ENV_AZURE_REST_DEBUG,
    ]:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install an uncoloured PLAIN OutputManager so stderr lines are exact."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def make_token(value: str = "tok", lifetime: timedelta = timedelta(hours=1)) -> AccessToken:
    """Build an AccessToken expiring *lifetime* from now (negative for expired)."""
    return AccessToken(access_token=value, expires_at=utcnow() + lifetime)


@pytest.fixture
def fresh_token() -> AccessToken:
    return make_token("fresh-token")


@pytest.fixture
def expired_token() -> AccessToken:
    return make_token("expired-token", timedelta(seconds=-1))


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
