"""Content provider adapter layer - abstracts over hosting backends."""

from relaybot.adapters.content.base import AbstractContentProvider
from relaybot.adapters.content.factory import create_content_provider
from relaybot.adapters.content.simulated import SimulatedContentProvider

__all__ = [
    "AbstractContentProvider",
    "SimulatedContentProvider",
    "create_content_provider",
]
