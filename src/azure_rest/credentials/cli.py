"""Azure CLI credential.

:class:`AzureCliCredential` shells out to ``az account get-access-token``
and reuses whatever account the developer is logged into. It is the last,
most manual entry of the default credential chain.

The tenant comes from the options, or, when unset, from
``az account show``. The CLI's stderr is classified so that "not
installed" and "not logged in" surface as their own error types instead of
a generic subprocess failure.

All process execution goes through :func:`run_az`, the single seam tests
replace.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import shlex
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional, Sequence

from pydantic import ValidationError

from azure_rest.config import load_environment
from azure_rest.credentials.base import TokenCredential, strip_default_scope
from azure_rest.exceptions import (
    AcquisitionError,
    CliLoginRequiredError,
    CliNotInstalledError,
    CliTimeoutError,
)
from azure_rest.models import (
    AccessToken,
    AzureCliCredentialOptions,
    CliTokenResponse,
    from_epoch_seconds,
)

logger = logging.getLogger(__name__)

AZ_EXECUTABLE = "az"

_NOT_INSTALLED_PATTERN = re.compile(r"az:(.*)not found")
_NOT_RECOGNIZED_PREFIX = "'az' is not recognized"
_LOGIN_PATTERN = re.compile(r"az login")
_SCOPED_LOGIN_PATTERN = re.compile(r"az login --scope")


class CommandResult(NamedTuple):
    """Captured outcome of one ``az`` invocation."""

    returncode: int
    stdout: str
    stderr: str


class CliErrorKind(str, Enum):
    """What the CLI's stderr says went wrong."""

    NONE = "none"
    NOT_INSTALLED = "not_installed"
    LOGIN_REQUIRED = "login_required"


def classify_cli_stderr(stderr: str) -> CliErrorKind:
    """Classify ``az`` stderr output.

    A bare ``az login`` prompt means no account is signed in. A hint of the
    form ``az login --scope ...`` only asks for consent to one resource and
    is not treated as a login failure.
    """
    if _NOT_INSTALLED_PATTERN.search(stderr) or stderr.startswith(_NOT_RECOGNIZED_PREFIX):
        return CliErrorKind.NOT_INSTALLED
    if _LOGIN_PATTERN.search(stderr) and not _SCOPED_LOGIN_PATTERN.search(stderr):
        return CliErrorKind.LOGIN_REQUIRED
    return CliErrorKind.NONE


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill *proc* if it is still running and reap it."""
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
    await proc.wait()


async def run_az(args: Sequence[str], timeout: float) -> CommandResult:
    """Run ``az`` with *args* through the shell and capture its output.

    Args:
        args: Arguments after the ``az`` executable name.
        timeout: Seconds before the process is killed.

    Raises:
        CliNotInstalledError: The shell could not be started.
        CliTimeoutError: The process outlived *timeout*.
    """
    command = shlex.join([AZ_EXECUTABLE, *args])
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=os.getcwd(),
        )
    except OSError as exc:
        raise CliNotInstalledError(f"Azure CLI not found. Please install: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise CliTimeoutError(
            f"Azure CLI did not respond within {timeout:g}s ({' '.join(args[:2])})"
        ) from None
    except BaseException:
        # Cancelled by the caller.
        await _kill(proc)
        raise

    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def _raise_for_result(result: CommandResult, failure: str) -> None:
    """Raise the error matching *result*, or return if the command succeeded."""
    kind = classify_cli_stderr(result.stderr)
    if kind is CliErrorKind.NOT_INSTALLED:
        raise CliNotInstalledError("Azure CLI not found. Please install")
    if kind is CliErrorKind.LOGIN_REQUIRED:
        raise CliLoginRequiredError("Please login to Azure CLI")
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        raise AcquisitionError(f"{failure}: {detail}")


def _parse_expires_on_text(text: str) -> datetime:
    """Parse the legacy ``expiresOn`` field. Naive values are local time."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc)


def parse_cli_token(output: str) -> AccessToken:
    """Build an :class:`AccessToken` from ``get-access-token`` JSON output.

    ``expires_on`` wins when it is numeric; otherwise ``expiresOn`` is
    parsed as a date.

    Raises:
        AcquisitionError: The output is not the expected JSON, the token is
            empty, or neither expiry field is usable.
    """
    try:
        response = CliTokenResponse.model_validate_json(output)
    except ValidationError as exc:
        raise AcquisitionError(f"Unexpected output from Azure CLI: {exc}") from exc

    if not response.access_token:
        raise AcquisitionError("Azure CLI returned an empty access token")

    expires_at: Optional[datetime] = None
    if response.expires_on is not None:
        try:
            expires_at = from_epoch_seconds(response.expires_on)
        except (ValueError, OverflowError, OSError):
            expires_at = None
    if expires_at is None and response.expires_on_text:
        try:
            expires_at = _parse_expires_on_text(response.expires_on_text)
        except ValueError as exc:
            raise AcquisitionError(
                f"Azure CLI returned an unreadable expiry: {response.expires_on_text!r}"
            ) from exc
    if expires_at is None:
        raise AcquisitionError("Azure CLI output has no expiry")

    return AccessToken(
        access_token=response.access_token,
        expires_at=expires_at,
        token_type=response.token_type,
    )


class AzureCliCredential(TokenCredential):
    """Authenticate with the account currently logged into the Azure CLI.

    Args:
        options: Tenant and timeouts. Defaults to the current CLI tenant,
            30 s for the token call and 10 s for the tenant lookup.

    Example::

        credential = AzureCliCredential()
        token = await credential.get_token("https://management.azure.com/.default")
    """

    def __init__(self, options: Optional[AzureCliCredentialOptions] = None) -> None:
        self.options = options or AzureCliCredentialOptions()

    @classmethod
    def from_env(cls) -> AzureCliCredential:
        """Use ``AZURE_TENANT_ID`` if set, otherwise the CLI's current tenant."""
        return cls(AzureCliCredentialOptions(tenant_id=load_environment().tenant_id))

    async def get_token(self, scope: str) -> AccessToken:
        tenant_id = self.options.tenant_id or await self._current_tenant_id()
        resource = strip_default_scope(scope)
        logger.debug("Requesting token from Azure CLI for %s (tenant %s)", resource, tenant_id)

        result = await run_az(
            [
                "account", "get-access-token",
                "--output", "json",
                "--resource", resource,
                "--tenant", tenant_id,
            ],
            timeout=self.options.token_timeout,
        )
        _raise_for_result(result, "Failed to get token from Azure CLI")
        return parse_cli_token(result.stdout)

    async def _current_tenant_id(self) -> str:
        """Ask the CLI which tenant its current account belongs to."""
        result = await run_az(
            ["account", "show", "--query", "tenantId", "--output", "tsv"],
            timeout=self.options.tenant_timeout,
        )
        _raise_for_result(result, "Failed to detect tenantId from Azure CLI context")
        tenant_id = result.stdout.strip()
        if not tenant_id:
            raise AcquisitionError("Could not detect tenantId from Azure CLI context")
        return tenant_id
