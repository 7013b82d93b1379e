"""Token-aware HTTP client for Azure REST APIs.

Classes:
    :class:`AzureClient` -- async client backed by :class:`httpx.AsyncClient`
    that refreshes its bearer token on demand.
    :class:`ClientOptions` / :class:`CredentialOptions` -- its configuration.

Example::

    from azure_rest.client import AzureClient, ClientOptions, CredentialOptions
    from azure_rest.credentials import ChainedCredential

    client = AzureClient(
        ClientOptions(
            base_url="https://management.azure.com",
            credential=CredentialOptions(
                helper=ChainedCredential(),
                scope="https://management.azure.com/.default",
            ),
        )
    )
    resp = await client.get("/subscriptions?api-version=2022-12-01")
"""

from azure_rest.client.azure_client import (
    AzureClient,
    ClientOptions,
    CredentialOptions,
    join_url,
)

__all__ = ["AzureClient", "ClientOptions", "CredentialOptions", "join_url"]
