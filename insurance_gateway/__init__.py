"""API-key gated, rate-limited gateway to the insurance recommendation backend."""

__version__ = "1.0.0"
