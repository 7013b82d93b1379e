"""Workload identity credential (federated token file).

Kubernetes workload identity and similar OIDC federation setups project a
short-lived signed token into the pod and point ``AZURE_FEDERATED_TOKEN_FILE``
at it. :class:`WorkloadIdentityCredential` reads that file on every call and
hands its content to :class:`ServicePrincipalCredential` as a client
assertion. It has no token logic of its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx

from azure_rest.config import load_environment
from azure_rest.credentials.base import TokenCredential
from azure_rest.credentials.service_principal import ServicePrincipalCredential
from azure_rest.exceptions import AcquisitionError, ConfigurationError
from azure_rest.models import (
    AccessToken,
    ServicePrincipalCredentialOptions,
    WorkloadIdentityCredentialOptions,
)


class WorkloadIdentityCredential(TokenCredential):
    """Authenticate with a federated token read from disk.

    Args:
        options: Client id, tenant id, token file path, authority host.
        transport: Optional :mod:`httpx` transport forwarded to the
            service principal exchange.
    """

    def __init__(
        self,
        options: WorkloadIdentityCredentialOptions,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.options = options
        self._transport = transport

    @classmethod
    def from_env(cls) -> WorkloadIdentityCredential:
        """Read ``AZURE_CLIENT_ID``, ``AZURE_TENANT_ID``, ``AZURE_FEDERATED_TOKEN_FILE`` and ``AZURE_AUTHORITY_HOST``."""
        env = load_environment()
        return cls(
            WorkloadIdentityCredentialOptions(
                client_id=env.client_id,
                tenant_id=env.tenant_id,
                federated_token_file=env.federated_token_file,
                authority_host=env.authority_host,
            )
        )

    def _read_assertion(self) -> str:
        opts = self.options
        if not opts.federated_token_file:
            raise ConfigurationError(f"{self.name}: The federated token file is not provided.")
        if not opts.client_id:
            raise ConfigurationError(f"{self.name}: The client id is not provided.")
        if not opts.tenant_id:
            raise ConfigurationError(f"{self.name}: The tenant id is not provided.")

        path = Path(opts.federated_token_file)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise AcquisitionError(
                f"{self.name}: Federated token file not found at {path}"
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise AcquisitionError(f"{self.name}: Failed to get token: {exc}") from exc

    async def get_token(self, scope: str) -> AccessToken:
        assertion = self._read_assertion()
        service_principal = ServicePrincipalCredential(
            ServicePrincipalCredentialOptions(
                client_id=self.options.client_id,
                tenant_id=self.options.tenant_id,
                client_secret=assertion,
                authority_host=self.options.authority_host,
                federated=True,
            ),
            transport=self._transport,
        )
        return await service_principal.get_token(scope)
