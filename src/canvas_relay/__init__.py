"""
Canvas Relay package.

Provides:
- A local HTTP relay fronting a completion backend (Ollama daemon or OpenAI chat API)
- Backend translators that normalize requests, responses and errors
- A best-effort parser for structured canvas analysis replies
"""

__version__ = "0.1.0"
