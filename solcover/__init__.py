"""solcover — source coverage for Solidity via probe injection."""

__version__ = "0.1.0"
