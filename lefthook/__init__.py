"""Git hooks manager library: configuration, skip rules and repository helpers."""

__version__ = "1.0.0"