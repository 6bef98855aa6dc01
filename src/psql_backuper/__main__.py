"""Entry point for ``python -m psql_backuper``."""

from .cli import app

if __name__ == "__main__":
    app()
