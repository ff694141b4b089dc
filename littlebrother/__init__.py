"""LittleBrother: a second model watching over a coding agent."""

__version__ = "0.3.0"
