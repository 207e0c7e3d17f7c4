"""Entry point for running compaction-guard as a module: python -m compaction_guard"""

from compaction_guard.cli.commands import app

if __name__ == "__main__":
    app()
