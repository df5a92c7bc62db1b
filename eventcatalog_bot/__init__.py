"""Slack assistant for EventCatalog, backed by a tool-calling language model."""

__version__ = "0.1.0"
