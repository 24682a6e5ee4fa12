"""Payment and settlement engine for the skinbag.rent marketplace."""

__version__ = "0.1.0"
