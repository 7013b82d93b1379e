"""Default credential chain.

:class:`ChainedCredential` tries each strategy of :data:`CREDENTIAL_CHAIN`
in order, building every one from the ambient environment, and returns the
first token obtained. The order runs from the most automatic to the most
manual:

1. :class:`~azure_rest.credentials.WorkloadIdentityCredential`
2. :class:`~azure_rest.credentials.ManagedIdentityCredential`
3. :class:`~azure_rest.credentials.ServicePrincipalCredential`
4. :class:`~azure_rest.credentials.AzureCliCredential`

so the same code works in AKS, on an Azure VM, in CI with a secret, and on a
developer laptop.

Set ``DEBUG=azure-rest:credentials`` (or ``AZURE_REST_DEBUG=1``) to print
one line per attempt with its duration.
"""

from __future__ import annotations

import logging
import time

from azure_rest.config import diagnostics_enabled
from azure_rest.credentials.base import TokenCredential
from azure_rest.credentials.cli import AzureCliCredential
from azure_rest.credentials.managed_identity import ManagedIdentityCredential
from azure_rest.credentials.service_principal import ServicePrincipalCredential
from azure_rest.credentials.workload_identity import WorkloadIdentityCredential
from azure_rest.exceptions import ChainExhaustedError
from azure_rest.models import AccessToken, CredentialFailure
from azure_rest.output import get_output

logger = logging.getLogger(__name__)

CREDENTIAL_CHAIN: tuple[type[TokenCredential], ...] = (
    WorkloadIdentityCredential,
    ManagedIdentityCredential,
    ServicePrincipalCredential,
    AzureCliCredential,
)


class ChainedCredential(TokenCredential):
    """Try every credential strategy in turn until one yields a token.

    Holds no state and no token cache. Strategies are rebuilt from the
    environment on every :meth:`get_token` call.

    Example::

        credential = ChainedCredential()
        token = await credential.get_token("https://management.azure.com/.default")
    """

    @classmethod
    def from_env(cls) -> ChainedCredential:
        return cls()

    async def get_token(self, scope: str) -> AccessToken:
        """Return the first token any strategy produces.

        Raises:
            ChainExhaustedError: Every strategy failed. The error lists
                each strategy's name and message in chain order.
        """
        trace = diagnostics_enabled()
        failures: list[CredentialFailure] = []

        for credential_cls in CREDENTIAL_CHAIN:
            name = credential_cls.__name__
            label = f"[{type(self).__name__}] {name}"
            if trace:
                get_output().diagnostic(f"{label} - trying...")
            start = time.perf_counter()

            try:
                token = await credential_cls.from_env().get_token(scope)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - start) * 1000
                if trace:
                    get_output().diagnostic(f"{label} - failed in {elapsed_ms:.0f}ms: {exc}")
                logger.debug("%s failed: %s", name, exc)
                failures.append(CredentialFailure(name=name, message=str(exc)))
                continue

            if trace:
                elapsed_ms = (time.perf_counter() - start) * 1000
                get_output().diagnostic(f"{label} - success in {elapsed_ms:.0f}ms")
            logger.debug("Token acquired with %s", name)
            return token

        raise ChainExhaustedError(failures)
