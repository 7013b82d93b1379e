"""Response formatting bridge -- maps :class:`httpx.Response` to the output system.

Used by ``azure-rest request``: the status line goes to stderr and the
decoded body to stdout via :meth:`~azure_rest.output.OutputManager.format_response`.
:class:`~azure_rest.client.AzureClient` itself never inspects bodies.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from azure_rest.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print *response* through the global output manager."""
    output = get_output()
    status = f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip()
    if response.is_success:
        output.info(status)
    else:
        output.warning(status)

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Return the body as decoded JSON, raw text, or ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text
