"""Local AI Provisioner - sets up a local Ollama server and Granite models."""

__version__ = "0.1.0"
