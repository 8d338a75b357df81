"""hostforge — declarative host configuration engine."""

__version__ = "0.4.0"
