"""aftersales command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``aftersales`` script).
"""

from aftersales.cli.main import cli

__all__ = ["cli"]
