"""Conversational inventory agent: hybrid product retrieval behind a tool-calling LLM loop."""

__version__ = "0.1.0"
