"""Typer application and CLI entry point for azure-rest.

Three commands sit on top of the library:

* ``azure-rest token`` -- acquire a token with any credential strategy and
  print it.
* ``azure-rest request`` -- send one authenticated request through
  :class:`~azure_rest.client.AzureClient`.
* ``azure-rest env`` -- show which identity variables the credential
  factories will see.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from enum import Enum
from typing import Any, Coroutine, Optional, TypeVar

import httpx
import typer
from rich.logging import RichHandler

from azure_rest import __version__
from azure_rest.exit_codes import EXIT_CONNECTION_ERROR, EXIT_GENERIC_FAILURE

T = TypeVar("T")

DEFAULT_BASE_URL = "https://management.azure.com"
DEFAULT_SCOPE = "https://management.azure.com/.default"

app = typer.Typer(
    name="azure-rest",
    help="Call Azure REST APIs with automatically acquired Entra ID tokens.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


class CredentialKind(str, Enum):
    """Credential strategies selectable with ``--credential``."""

    CHAINED = "chained"
    CLI = "cli"
    MANAGED_IDENTITY = "managed-identity"
    SERVICE_PRINCIPAL = "service-principal"
    WORKLOAD_IDENTITY = "workload-identity"


def build_credential(kind: CredentialKind):
    """Instantiate the strategy for *kind* from the environment."""
    from azure_rest.credentials import (
        AzureCliCredential,
        ChainedCredential,
        ManagedIdentityCredential,
        ServicePrincipalCredential,
        WorkloadIdentityCredential,
    )

    classes = {
        CredentialKind.CHAINED: ChainedCredential,
        CredentialKind.CLI: AzureCliCredential,
        CredentialKind.MANAGED_IDENTITY: ManagedIdentityCredential,
        CredentialKind.SERVICE_PRINCIPAL: ServicePrincipalCredential,
        CredentialKind.WORKLOAD_IDENTITY: WorkloadIdentityCredential,
    }
    return classes[kind].from_env()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"azure-rest {__version__}")
        raise typer.Exit()


def _configure_logging(console: Any) -> None:
    """Send ``azure_rest`` debug logs to stderr through Rich."""
    handler = RichHandler(console=console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger = logging.getLogger("azure_rest")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Install the global output manager from the shared flags."""
    from azure_rest.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    if verbose:
        _configure_logging(output.stderr_console)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, turning library failures into clean exits."""
    from azure_rest.exceptions import AzureRestError
    from azure_rest.output import get_output

    try:
        return asyncio.run(coro)
    except AzureRestError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except httpx.HTTPError as exc:
        get_output().error(f"Request failed: {exc}")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR) from None


@app.command("token")
def token_command(
    scope: str = typer.Option(DEFAULT_SCOPE, "--scope", "-s", help="Scope to request."),
    credential: CredentialKind = typer.Option(
        CredentialKind.CHAINED, "--credential", "-c", help="Credential strategy."
    ),
    raw: bool = typer.Option(False, "--raw", help="Print only the access token."),
) -> None:
    """Acquire an access token and print it.

    Example::

        azure-rest token --scope https://vault.azure.net/.default --credential cli
    """
    from azure_rest.output import get_output

    helper = build_credential(credential)
    token = _run(helper.get_token(scope))

    output = get_output()
    if raw:
        output.print_data(token.access_token)
        return
    output.format_response(token.model_dump(mode="json"))


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: value', got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


@app.command("request")
def request_command(
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, PATCH, DELETE)."),
    path: str = typer.Argument(help="Path relative to --base-url, including the query string."),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--base-url", "-b", help="API base URL."),
    scope: str = typer.Option(DEFAULT_SCOPE, "--scope", "-s", help="Scope to request."),
    credential: CredentialKind = typer.Option(
        CredentialKind.CHAINED, "--credential", "-c", help="Credential strategy."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="JSON request body."),
    header: list[str] = typer.Option([], "--header", "-H", help="Extra header 'Name: value'."),
) -> None:
    """Send one authenticated request and print the response.

    Example::

        azure-rest request GET "/subscriptions?api-version=2022-12-01"
    """
    from azure_rest.client import AzureClient, ClientOptions, CredentialOptions
    from azure_rest.client.response import format_api_response

    verb = method.upper()
    headers = _parse_headers(header)
    body: Any = None
    if data is not None:
        if verb not in ("POST", "PUT", "PATCH"):
            raise typer.BadParameter("only allowed with POST, PUT or PATCH", param_hint="--data")
        try:
            body = json.loads(data)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"invalid JSON: {exc}", param_hint="--data") from None

    options = ClientOptions(
        base_url=base_url,
        credential=CredentialOptions(helper=build_credential(credential), scope=scope),
    )

    async def _send() -> httpx.Response:
        async with AzureClient(options) as client:
            if verb in ("POST", "PUT", "PATCH"):
                send = getattr(client, verb.lower())
                return await send(path, body, headers=headers)
            return await client.send_request(path, method=verb, headers=headers)

    format_api_response(_run(_send()))


@app.command("env")
def env_command() -> None:
    """Show the identity variables the credential factories will read."""
    from azure_rest.config import diagnostics_enabled, load_environment
    from azure_rest.output import get_output

    env = load_environment().model_dump()
    if env.get("client_secret"):
        env["client_secret"] = "****"
    env["diagnostics"] = diagnostics_enabled()
    get_output().format_response(env)


def _setup_signal_handlers() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``azure-rest`` console script.

    Commands already turn library failures into exits. Anything that still
    escapes is handled here: an :class:`~azure_rest.exceptions.AzureRestError`
    exits with its ``exit_code``, an :class:`httpx.HTTPError` with
    :data:`~azure_rest.exit_codes.EXIT_CONNECTION_ERROR`, and everything else
    with :data:`~azure_rest.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from azure_rest.exceptions import AzureRestError
        from azure_rest.output import get_output

        if isinstance(exc, AzureRestError):
            get_output().error(str(exc))
            sys.exit(exc.exit_code)
        elif isinstance(exc, httpx.HTTPError):
            get_output().error(f"Request failed: {exc}")
            sys.exit(EXIT_CONNECTION_ERROR)
        else:
            get_output().error(f"Unexpected error: {exc}")
            sys.exit(EXIT_GENERIC_FAILURE)
