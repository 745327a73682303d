"""AgroMarket inventory and sales transaction core."""

__version__ = "1.0.0"
