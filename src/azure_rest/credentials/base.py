"""Abstract base class for credential strategies.

Every way of obtaining an Entra ID access token -- the Azure CLI, a managed
identity, a service principal, a federated workload identity, or a chain of
them -- is a :class:`TokenCredential`. Consumers such as
:class:`~azure_rest.client.AzureClient` only ever call
:meth:`TokenCredential.get_token` and never care which strategy sits behind
it.

To implement a new strategy, subclass :class:`TokenCredential` and implement
:meth:`~TokenCredential.get_token` and :meth:`~TokenCredential.from_env`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from azure_rest.models import AccessToken

DEFAULT_SCOPE_SUFFIX = ".default"


def strip_default_scope(scope: str) -> str:
    """Turn a ``/.default`` scope into the resource form some endpoints expect.

    The Azure CLI and the managed identity endpoint take a *resource*
    (``https://management.azure.com/``) rather than a v2 scope
    (``https://management.azure.com/.default``).

    Example::

        >>> strip_default_scope("https://vault.azure.net/.default")
        'https://vault.azure.net/'
        >>> strip_default_scope("https://vault.azure.net")
        'https://vault.azure.net'
    """
    if scope.endswith(DEFAULT_SCOPE_SUFFIX):
        return scope[: -len(DEFAULT_SCOPE_SUFFIX)]
    return scope


class TokenCredential(ABC):
    """A strategy that can produce an :class:`~azure_rest.models.AccessToken`.

    Strategies hold only immutable configuration. Each :meth:`get_token`
    call is independent: it performs one external operation (a subprocess,
    an HTTP request, a file read) and either returns a complete token or
    raises.
    """

    @abstractmethod
    async def get_token(self, scope: str) -> AccessToken:
        """Acquire an access token valid for *scope*.

        Args:
            scope: Audience of the token, usually a resource URI followed by
                ``/.default``.

        Returns:
            A token with a non-empty ``access_token``.

        Raises:
            ConfigurationError: A required input is missing.
            AcquisitionError: The underlying mechanism failed.
        """
        ...

    @classmethod
    @abstractmethod
    def from_env(cls) -> TokenCredential:
        """Build an instance from the ambient environment.

        Never validates: an incomplete environment yields an instance whose
        first :meth:`get_token` call raises
        :class:`~azure_rest.exceptions.ConfigurationError`.
        """
        ...

    @property
    def name(self) -> str:
        """Display name used in diagnostics and chained error messages."""
        return type(self).__name__
