"""Off-chain intent solver."""

__version__ = "0.1.0"
