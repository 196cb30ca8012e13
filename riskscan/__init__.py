"""Token security risk scanner for Solana mints."""

__version__ = "0.1.0"
