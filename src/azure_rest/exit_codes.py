"""Numeric process exit codes for the ``azure-rest`` command line.

Each constant maps to one failure category and is referenced by the
corresponding :class:`~azure_rest.exceptions.AzureRestError` subclass, so
shell scripts can branch on ``$?`` without parsing stderr.

Example::

    $ azure-rest token --scope https://management.azure.com/.default
    $ echo $?
    3   # EXIT_ACQUISITION_FAILURE -- no credential produced a token
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIGURATION_ERROR = 2
"""A required credential input (tenant, client id, secret, file) was missing."""

EXIT_ACQUISITION_FAILURE = 3
"""No credential strategy could obtain an access token."""

EXIT_REFRESH_FAILURE = 4
"""The client could not obtain a fresh token within its refresh attempts."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while sending the API request."""
