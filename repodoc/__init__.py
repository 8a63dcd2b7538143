"""Documentation and changelog generation backed by a local Ollama model."""

__version__ = "0.1.0"
