"""
Entry point for running compactor as a module: python -m compactor
"""

from compactor.cli.commands import app

if __name__ == "__main__":
    app()
