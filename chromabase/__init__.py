"""ChromaBase CRM API with webhook and live-stream change notifications."""

__version__ = "1.0.0"
