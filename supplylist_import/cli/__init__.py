"""Command line entrypoint: ``python -m supplylist_import.cli``."""

from .__main__ import main

__all__ = ["main"]
