"""azure-rest -- Call Azure REST APIs with automatically acquired Entra ID tokens.

This package pairs a set of credential strategies with a small asynchronous
HTTP client. The client keeps one access token, refreshes it when it expires
and adds it to every request it sends.

Typical usage::

    from azure_rest.client import AzureClient, ClientOptions, CredentialOptions
    from azure_rest.credentials import ChainedCredential

    options = ClientOptions(
        base_url="https://management.azure.com",
        credential=CredentialOptions(
            helper=ChainedCredential(),
            scope="https://management.azure.com/.default",
        ),
    )
    async with AzureClient(options) as client:
        response = await client.get("/subscriptions?api-version=2022-12-01")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Environment variable lookup for identity settings.
    credentials: Token acquisition strategies and the default chain.
    client: The token-aware HTTP client.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes for the CLI.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
