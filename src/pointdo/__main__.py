"""Main entry point for pointdo CLI.

Supports both direct invocation (`python -m pointdo`) and package entry point.
"""

from pointdo.cli import cli

if __name__ == "__main__":
    cli()
