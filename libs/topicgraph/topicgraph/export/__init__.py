"""Topic graph exports."""

from topicgraph.export.deck import ExportDeck, SnippetLink, select_topics
from topicgraph.export.renderers import SUPPORTED_FORMATS, DeckRenderer, get_renderer

__all__ = [
    "SUPPORTED_FORMATS",
    "DeckRenderer",
    "ExportDeck",
    "SnippetLink",
    "get_renderer",
    "select_topics",
]
