"""Allow ``python -m commitscope``."""

from commitscope.cli import app

app()
