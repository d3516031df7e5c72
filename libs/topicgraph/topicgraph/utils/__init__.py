"""Utility helpers."""

from topicgraph.utils.llm_json import parse_llm_json
from topicgraph.utils.text import format_duration, sanitize_filename

__all__ = ["format_duration", "parse_llm_json", "sanitize_filename"]
