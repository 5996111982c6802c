"""Entry point for running wonderkits as a module: python -m wonderkits."""

from wonderkits.cli.commands import app

if __name__ == "__main__":
    app()
