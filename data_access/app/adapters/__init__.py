"""
Adapters package for the data access layer.

Contains the HTTP transport for the admin resource APIs and the mapping of
transport failures onto shared errors. Keep adapters thin and side-effect
free outside of explicit calls.
"""

from .api_client import ResourceApiClient
from .error_translator import translate_exception, translate_response, translate_transport_error

__all__ = [
    "ResourceApiClient",
    "translate_exception",
    "translate_response",
    "translate_transport_error",
]
