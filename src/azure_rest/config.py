"""Ambient configuration loaded from environment variables.

This is the only module in azure-rest that reads identity settings from
``os.environ``. Credential strategies receive already-resolved option
models; their ``from_env()`` factories are thin adapters that call
:func:`load_environment` and copy the relevant fields across.

Variables read:

========================================  ===========================================
``AZURE_TENANT_ID``                       Directory (tenant) id.
``AZURE_CLIENT_ID``                       Application or user-assigned identity id.
``AZURE_CLIENT_SECRET``                   Application client secret.
``AZURE_FEDERATED_TOKEN_FILE``            Path of the projected federated token.
``AZURE_AUTHORITY_HOST``                  Entra ID authority (sovereign clouds).
``AZURE_MANAGED_IDENTITY_ENDPOINT``       Managed identity endpoint override.
``IDENTITY_ENDPOINT``                     Platform-provided managed identity endpoint.
``DEBUG`` / ``AZURE_REST_DEBUG``          Credential chain diagnostics.
========================================  ===========================================

Empty values are treated the same as unset ones.
"""

from __future__ import annotations

import os
import re
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

ENV_TENANT_ID = "AZURE_TENANT_ID"
ENV_CLIENT_ID = "AZURE_CLIENT_ID"
ENV_CLIENT_SECRET = "AZURE_CLIENT_SECRET"
ENV_FEDERATED_TOKEN_FILE = "AZURE_FEDERATED_TOKEN_FILE"
ENV_AUTHORITY_HOST = "AZURE_AUTHORITY_HOST"
ENV_MANAGED_IDENTITY_ENDPOINT = "AZURE_MANAGED_IDENTITY_ENDPOINT"
ENV_IDENTITY_ENDPOINT = "IDENTITY_ENDPOINT"
ENV_DEBUG = "DEBUG"
ENV_AZURE_REST_DEBUG = "AZURE_REST_DEBUG"

DEBUG_NAMESPACES = frozenset({"azure-rest:credentials", "azure-rest:*"})
"""``DEBUG`` entries that switch on credential chain diagnostics."""

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class AzureEnvironment(BaseModel):
    """Snapshot of the Azure identity variables present in the environment."""

    model_config = ConfigDict(frozen=True)

    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    federated_token_file: Optional[str] = None
    authority_host: Optional[str] = None
    managed_identity_endpoint: Optional[str] = None


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    return value if value else None


def load_environment(environ: Optional[Mapping[str, str]] = None) -> AzureEnvironment:
    """Read the Azure identity variables into an :class:`AzureEnvironment`.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        The resolved snapshot. Missing variables are ``None``; nothing is
        validated here.
    """
    env = os.environ if environ is None else environ
    return AzureEnvironment(
        tenant_id=_get(env, ENV_TENANT_ID),
        client_id=_get(env, ENV_CLIENT_ID),
        client_secret=_get(env, ENV_CLIENT_SECRET),
        federated_token_file=_get(env, ENV_FEDERATED_TOKEN_FILE),
        authority_host=_get(env, ENV_AUTHORITY_HOST),
        managed_identity_endpoint=(
            _get(env, ENV_MANAGED_IDENTITY_ENDPOINT) or _get(env, ENV_IDENTITY_ENDPOINT)
        ),
    )


def diagnostics_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return whether credential chain diagnostics should be printed.

    Enabled when ``DEBUG`` lists ``azure-rest:credentials`` or
    ``azure-rest:*`` (comma or whitespace separated), or when
    ``AZURE_REST_DEBUG`` is truthy.
    """
    env = os.environ if environ is None else environ
    if (env.get(ENV_AZURE_REST_DEBUG) or "").strip().lower() in _TRUTHY:
        return True
    namespaces = re.split(r"[,\s]+", env.get(ENV_DEBUG) or "")
    return any(ns in DEBUG_NAMESPACES for ns in namespaces)
