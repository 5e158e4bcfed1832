"""Monte Carlo performance simulation for trading-journal histories."""

__version__ = "0.1.0"
