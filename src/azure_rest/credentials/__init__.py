"""Credential strategies for acquiring Entra ID access tokens.

The main entry points are:

- :class:`TokenCredential` -- abstract base class every strategy extends.
- :class:`AzureCliCredential` -- token from the logged-in Azure CLI.
- :class:`ManagedIdentityCredential` -- token from the platform metadata endpoint.
- :class:`ServicePrincipalCredential` -- client secret or client assertion.
- :class:`WorkloadIdentityCredential` -- federated token file as assertion.
- :class:`ChainedCredential` -- all of the above, tried in order.

Typical usage::

    from azure_rest.credentials import ChainedCredential

    token = await ChainedCredential().get_token("https://management.azure.com/.default")
"""

from azure_rest.credentials.base import TokenCredential, strip_default_scope
from azure_rest.credentials.chained import CREDENTIAL_CHAIN, ChainedCredential
from azure_rest.credentials.cli import AzureCliCredential
from azure_rest.credentials.managed_identity import ManagedIdentityCredential
from azure_rest.credentials.service_principal import ServicePrincipalCredential
from azure_rest.credentials.workload_identity import WorkloadIdentityCredential

__all__ = [
    "CREDENTIAL_CHAIN",
    "AzureCliCredential",
    "ChainedCredential",
    "ManagedIdentityCredential",
    "ServicePrincipalCredential",
    "TokenCredential",
    "WorkloadIdentityCredential",
    "strip_default_scope",
]
