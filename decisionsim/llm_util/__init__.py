"""Helpers for talking to LLMs: model fallback, structured output and test doubles."""
