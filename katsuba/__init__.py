"""Tools for KIWAD archives, type lists and KingsIsle string hashes."""

__version__ = "0.1.0"