"""discotrack command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``discotrack`` script).
"""

from discotrack.cli.main import cli

__all__ = ["cli"]
