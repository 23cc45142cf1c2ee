"""Seattle incident hot spots by neighborhood, with yearly trend projections."""

__version__ = "0.1.0"
