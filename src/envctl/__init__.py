"""envctl — stop and start non-production Azure environments in dependency order."""

__version__ = "0.1.0"
