"""Service principal credential (OAuth2 client credentials grant).

:class:`ServicePrincipalCredential` exchanges an application's client id
and either a client secret or a signed client assertion for an access token
at the tenant's Entra ID v2 token endpoint (:rfc:`6749` section 4.4, with
:rfc:`7523` assertions for the federated variant).

Unlike the other strategies, expiry is derived additively from
``expires_in`` rather than read from an absolute timestamp.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

import httpx
from pydantic import ValidationError

from azure_rest.config import load_environment
from azure_rest.credentials.base import TokenCredential
from azure_rest.exceptions import AcquisitionError, ConfigurationError
from azure_rest.models import (
    DEFAULT_AUTHORITY_HOST,
    AccessToken,
    OAuth2TokenResponse,
    ServicePrincipalCredentialOptions,
    utcnow,
)

logger = logging.getLogger(__name__)

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"

TOKEN_REQUEST_TIMEOUT = 30.0


def token_endpoint(tenant_id: str, authority_host: Optional[str] = None) -> str:
    """Return ``{authority}/{tenant}/oauth2/v2.0/token``.

    A trailing slash on a custom authority host is dropped before joining.
    """
    authority = authority_host.rstrip("/") if authority_host else DEFAULT_AUTHORITY_HOST
    return f"{authority}/{tenant_id}/oauth2/v2.0/token"


class ServicePrincipalCredential(TokenCredential):
    """Authenticate as an application registration.

    With ``federated=False`` the ``client_secret`` option is sent as
    ``client_secret``. With ``federated=True`` it is sent as a JWT
    ``client_assertion``.

    Args:
        options: Client id, tenant id, secret or assertion, authority host.
        transport: Optional :mod:`httpx` transport, mainly for tests.
    """

    def __init__(
        self,
        options: ServicePrincipalCredentialOptions,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.options = options
        self._transport = transport

    @classmethod
    def from_env(cls) -> ServicePrincipalCredential:
        """Read ``AZURE_CLIENT_ID``, ``AZURE_TENANT_ID``, ``AZURE_CLIENT_SECRET`` and ``AZURE_AUTHORITY_HOST``."""
        env = load_environment()
        return cls(
            ServicePrincipalCredentialOptions(
                client_id=env.client_id,
                tenant_id=env.tenant_id,
                client_secret=env.client_secret,
                authority_host=env.authority_host,
                federated=False,
            )
        )

    def _form(self, scope: str) -> dict[str, str]:
        opts = self.options
        if not opts.client_secret:
            kind = "client assertion" if opts.federated else "client secret"
            raise ConfigurationError(f"{self.name}: The {kind} is not provided.")
        if not opts.client_id:
            raise ConfigurationError(f"{self.name}: The client id is not provided.")
        if not opts.tenant_id:
            raise ConfigurationError(f"{self.name}: The tenant id is not provided.")

        form = {
            "grant_type": "client_credentials",
            "client_id": opts.client_id,
            "scope": scope,
        }
        if opts.federated:
            form["client_assertion"] = opts.client_secret
            form["client_assertion_type"] = CLIENT_ASSERTION_TYPE
        else:
            form["client_secret"] = opts.client_secret
        return form

    async def get_token(self, scope: str) -> AccessToken:
        form = self._form(scope)
        url = token_endpoint(self.options.tenant_id or "", self.options.authority_host)
        logger.debug("Requesting client credentials token from %s", url)

        try:
            async with httpx.AsyncClient(
                timeout=TOKEN_REQUEST_TIMEOUT, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise AcquisitionError(f"Token request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise AcquisitionError(
                f"Failed to get token (HTTP {response.status_code}): {response.text}"
            )

        try:
            data = OAuth2TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise AcquisitionError(f"Malformed token response: {exc}") from exc
        if not data.access_token:
            raise AcquisitionError("Token response contained an empty access_token")
        if data.expires_in is None:
            raise AcquisitionError("Token response is missing 'expires_in'")

        return AccessToken(
            access_token=data.access_token,
            expires_at=utcnow() + timedelta(seconds=data.expires_in),
            token_type=data.token_type,
            client_id=data.client_id,
        )
