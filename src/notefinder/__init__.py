"""NoteFinder - mirror a notes folder and search it."""

__version__ = "0.1.0"
