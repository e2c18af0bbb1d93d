"""vtodo: repo-local todo manager (JSON task store, CLI and web API)."""

__version__ = "1.0.0"
