"""Managed identity credential.

:class:`ManagedIdentityCredential` asks the platform's local metadata
endpoint for a token. It works on Azure VMs, App Service, Container Apps,
AKS and anywhere else a system- or user-assigned identity is attached.

The endpoint only answers from inside Azure, so the request carries a very
short timeout (300 ms by default): off-platform, the chain should move on
quickly.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

import httpx
from pydantic import ValidationError

from azure_rest.config import load_environment
from azure_rest.credentials.base import TokenCredential, strip_default_scope
from azure_rest.exceptions import AcquisitionError, ManagedIdentityTimeoutError
from azure_rest.models import (
    DEFAULT_IMDS_ENDPOINT,
    AccessToken,
    ManagedIdentityCredentialOptions,
    OAuth2TokenResponse,
    from_epoch_seconds,
    utcnow,
)

logger = logging.getLogger(__name__)

IMDS_API_VERSION = "2018-02-01"

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)
"""Assumed lifetime when the endpoint omits ``expires_on``."""


class ManagedIdentityCredential(TokenCredential):
    """Authenticate as the managed identity of the current Azure resource.

    Args:
        options: Identity client id, endpoint and timeout.
        transport: Optional :mod:`httpx` transport, mainly for tests.
    """

    def __init__(
        self,
        options: Optional[ManagedIdentityCredentialOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.options = options or ManagedIdentityCredentialOptions()
        self._transport = transport

    @classmethod
    def from_env(cls) -> ManagedIdentityCredential:
        """Read ``AZURE_CLIENT_ID`` and the endpoint overrides."""
        env = load_environment()
        return cls(
            ManagedIdentityCredentialOptions(
                client_id=env.client_id,
                endpoint=env.managed_identity_endpoint or DEFAULT_IMDS_ENDPOINT,
            )
        )

    async def get_token(self, scope: str) -> AccessToken:
        params = {"resource": strip_default_scope(scope), "api-version": IMDS_API_VERSION}
        if self.options.client_id:
            params["client_id"] = self.options.client_id

        logger.debug("Requesting managed identity token from %s", self.options.endpoint)
        try:
            async with httpx.AsyncClient(
                timeout=self.options.timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    self.options.endpoint,
                    params=params,
                    headers={"Metadata": "true"},
                )
        except httpx.TimeoutException as exc:
            raise ManagedIdentityTimeoutError(
                f"Managed identity endpoint did not respond within "
                f"{self.options.timeout * 1000:g}ms"
            ) from exc
        except httpx.HTTPError as exc:
            raise AcquisitionError(f"Managed identity endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise AcquisitionError(
                f"Managed identity endpoint returned HTTP {response.status_code}: {response.text}"
            )

        try:
            data = OAuth2TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise AcquisitionError(f"Malformed managed identity response: {exc}") from exc
        if not data.access_token:
            raise AcquisitionError("Managed identity endpoint returned an empty access token")

        if data.expires_on not in (None, ""):
            try:
                expires_at = from_epoch_seconds(data.expires_on)
            except (ValueError, OverflowError, OSError) as exc:
                raise AcquisitionError(
                    f"Malformed expires_on in managed identity response: {data.expires_on!r}"
                ) from exc
        else:
            expires_at = utcnow() + DEFAULT_TOKEN_LIFETIME

        return AccessToken(
            access_token=data.access_token,
            expires_at=expires_at,
            token_type=data.token_type,
            client_id=data.client_id,
        )
