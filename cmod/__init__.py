"""cmod — automated content-moderation decision engine for paid-content uploads."""

__version__ = "0.1.0"
