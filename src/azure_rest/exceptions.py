"""Exception hierarchy for azure-rest.

All exceptions inherit from :class:`AzureRestError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`azure_rest.exit_codes`.
The command-line entry point in :func:`azure_rest.app.main` catches
``AzureRestError`` and exits with that code.

Subclass hierarchy::

    AzureRestError                  (exit 1)
    +-- ConfigurationError          (exit 2)
    +-- AcquisitionError            (exit 3)
    |   +-- CliNotInstalledError
    |   +-- CliLoginRequiredError
    |   +-- CliTimeoutError
    |   +-- ManagedIdentityTimeoutError
    +-- ChainExhaustedError         (exit 3)
    +-- RefreshExhaustedError       (exit 4)
    +-- TokenUnavailableError       (exit 4)

Network failures raised by :mod:`httpx` while dispatching an API request are
not wrapped; they reach the caller as :class:`httpx.HTTPError` subclasses.
"""

from __future__ import annotations

from typing import Optional, Sequence

from azure_rest.exit_codes import (
    EXIT_ACQUISITION_FAILURE,
    EXIT_CONFIGURATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_REFRESH_FAILURE,
)
from azure_rest.models import CredentialFailure


class AzureRestError(Exception):
    """Base exception for all azure-rest errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(AzureRestError):
    """Raised when a credential is missing a required input (client id, secret, token file...)."""

    exit_code = EXIT_CONFIGURATION_ERROR


class AcquisitionError(AzureRestError):
    """Raised when a credential strategy could not obtain a token."""

    exit_code = EXIT_ACQUISITION_FAILURE


class CliNotInstalledError(AcquisitionError):
    """The ``az`` executable could not be found or started."""


class CliLoginRequiredError(AcquisitionError):
    """The Azure CLI has no logged-in account (``az login`` is required)."""


class CliTimeoutError(AcquisitionError):
    """An ``az`` invocation did not finish within its timeout."""


class ManagedIdentityTimeoutError(AcquisitionError):
    """The managed identity endpoint did not answer within its timeout.

    Usually means the process is not running inside Azure.
    """


class ChainExhaustedError(AzureRestError):
    """Raised when every strategy of a :class:`~azure_rest.credentials.ChainedCredential` failed.

    Attributes:
        failures: One :class:`~azure_rest.models.CredentialFailure` per
            attempted strategy, in chain order.
    """

    exit_code = EXIT_ACQUISITION_FAILURE

    def __init__(self, failures: Sequence[CredentialFailure]):
        self.failures = list(failures)
        lines = "\n".join(f"[{f.name}] {f.message}" for f in self.failures)
        super().__init__(f"Failed to get token, errors:\n{lines}")


class RefreshExhaustedError(AzureRestError):
    """Raised when :class:`~azure_rest.client.AzureClient` gave up refreshing its token."""

    exit_code = EXIT_REFRESH_FAILURE


class TokenUnavailableError(AzureRestError):
    """Raised when no token is cached after a refresh loop reported success."""

    exit_code = EXIT_REFRESH_FAILURE
