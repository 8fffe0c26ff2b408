"""Infrastructure adapters: LLM providers and persistence."""
