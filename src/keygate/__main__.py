"""Allow ``python -m keygate``."""

from keygate.cli.app import cli

cli()
