"""Allow running with ``python -m envctl``."""

from envctl.cli import app

app(prog_name="envctl")
