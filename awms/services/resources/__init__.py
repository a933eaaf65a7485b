"""Client for the server-side REST collections."""

from .client import RESOURCES, ResourceClient

__all__ = [
    "RESOURCES",
    "ResourceClient",
]
