"""map-validation-checker: classify how well a map's author time is corroborated."""

__version__ = "0.1.0"
