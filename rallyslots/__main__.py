"""
Entry point for ``python -m rallyslots``.
"""

from .cli.app import app

if __name__ == "__main__":
    app()
