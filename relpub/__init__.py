"""relpub - publish signed release assets and verify them."""

__version__ = "0.1.0"
