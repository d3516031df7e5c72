"""Media providers."""

from topicgraph.providers.media.base import SOURCE_TYPES, MediaProvider

__all__ = ["SOURCE_TYPES", "MediaProvider"]
