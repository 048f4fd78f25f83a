"""Weatherflow: typed workflow graphs executed against weather and email collaborators."""

__version__ = "1.0.0"
