"""Densified MinHash sketching and neighbor-joining trees for genome collections."""

__version__ = "0.1.0"
