"""Canonical Pydantic models shared across all azure-rest modules.

The models fall into three groups:

**Tokens** -- :class:`AccessToken`, the immutable value every credential
strategy produces and :class:`~azure_rest.client.AzureClient` caches.

**Strategy options** -- one frozen model per credential strategy:
    :class:`AzureCliCredentialOptions`,
    :class:`ManagedIdentityCredentialOptions`,
    :class:`ServicePrincipalCredentialOptions`, and
    :class:`WorkloadIdentityCredentialOptions`.
Required inputs are optional at construction time on purpose: a strategy
built from an incomplete environment only fails once ``get_token`` is called.

**Provider responses** -- :class:`CliTokenResponse` and
:class:`OAuth2TokenResponse`, lenient parsers for the JSON returned by
``az account get-access-token`` and by the Entra ID / managed identity
token endpoints. Unknown keys are kept in ``model_extra``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"
"""Public-cloud Entra ID authority used when no authority host is configured."""

DEFAULT_IMDS_ENDPOINT = "http://169.254.169.254/metadata/identity/oauth2/token"
"""Azure Instance Metadata Service token endpoint."""


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def from_epoch_seconds(value: Union[int, float, str]) -> datetime:
    """Convert an epoch-seconds value (number or numeric string) to a UTC datetime.

    Raises:
        ValueError: If *value* is not numeric.
    """
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


# --- Tokens ---


class AccessToken(BaseModel):
    """A bearer token and its expiry.

    Instances are frozen; a refresh always produces a new object.

    Example::

        token = AccessToken(access_token="eyJ0...", expires_at=utcnow())
        token.is_expired()  # True
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(min_length=1, repr=False)
    expires_at: datetime
    token_type: Optional[str] = None
    client_id: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive expiries are taken to be UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` once ``expires_at`` is at or before *now*.

        No safety margin is applied. A naive *now* is taken to be UTC.
        """
        now = now or utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return self.expires_at <= now


class CredentialFailure(NamedTuple):
    """One failed attempt inside a credential chain."""

    name: str
    message: str


# --- Strategy options ---


class AzureCliCredentialOptions(BaseModel):
    """Options for :class:`~azure_rest.credentials.AzureCliCredential`.

    When ``tenant_id`` is ``None`` the tenant of the CLI's current account
    (``az account show``) is used.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: Optional[str] = None
    token_timeout: float = Field(default=30.0, gt=0, description="Seconds allowed for get-access-token")
    tenant_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed for account show")


class ManagedIdentityCredentialOptions(BaseModel):
    """Options for :class:`~azure_rest.credentials.ManagedIdentityCredential`.

    ``client_id`` selects a user-assigned identity; leave it unset for the
    system-assigned identity.
    """

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    endpoint: str = DEFAULT_IMDS_ENDPOINT
    timeout: float = Field(default=0.3, gt=0)


class ServicePrincipalCredentialOptions(BaseModel):
    """Options for :class:`~azure_rest.credentials.ServicePrincipalCredential`.

    ``client_secret`` holds either the application secret or, when
    ``federated`` is ``True``, a signed JWT assertion.
    """

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    tenant_id: Optional[str] = None
    client_secret: Optional[str] = Field(default=None, repr=False)
    authority_host: Optional[str] = None
    federated: bool = False


class WorkloadIdentityCredentialOptions(BaseModel):
    """Options for :class:`~azure_rest.credentials.WorkloadIdentityCredential`."""

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    tenant_id: Optional[str] = None
    federated_token_file: Optional[str] = None
    authority_host: Optional[str] = None


# --- Provider responses ---


class CliTokenResponse(BaseModel):
    """JSON printed by ``az account get-access-token --output json``.

    ``expires_on`` (epoch seconds) is only emitted by recent CLI versions;
    ``expiresOn`` is a local-time date string kept for older ones.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    expires_on: Optional[Union[int, float, str]] = None
    expires_on_text: Optional[str] = Field(default=None, alias="expiresOn")
    token_type: Optional[str] = Field(default=None, alias="tokenType")
    tenant: Optional[str] = None
    subscription: Optional[str] = None


class OAuth2TokenResponse(BaseModel):
    """Token response from the Entra ID v2 endpoint or a managed identity endpoint.

    Entra ID answers with ``expires_in``; the metadata endpoint adds the
    absolute ``expires_on`` and, for user-assigned identities, ``client_id``.
    Numeric fields may arrive as strings.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[float] = None
    expires_on: Optional[Union[int, float, str]] = None
    ext_expires_in: Optional[float] = None
    not_before: Optional[Union[int, float, str]] = None
    resource: Optional[str] = None
    client_id: Optional[str] = None
