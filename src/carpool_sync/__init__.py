"""Local-first synchronized store for weekly carpool trips and payments."""

__version__ = "1.0.0"
