"""
Resource definitions and façades.

Import ``resources.facade`` directly for ``DataAccessClient``.
"""

from .registry import (
    DOCUMENTS,
    RESOURCES,
    DocumentDefinition,
    ResourceDefinition,
    get_document,
    get_resource,
    register_document,
    register_resource,
)

__all__ = [
    "DOCUMENTS",
    "RESOURCES",
    "DocumentDefinition",
    "ResourceDefinition",
    "get_document",
    "get_resource",
    "register_document",
    "register_resource",
]
