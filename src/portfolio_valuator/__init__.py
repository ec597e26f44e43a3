"""Multi-chain wallet portfolio valuation."""

__version__ = "0.1.0"
