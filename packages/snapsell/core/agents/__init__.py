"""LLM-facing building blocks: structured generation and prompt packs."""
