"""Content-addressed object store, staging index, trees and commits."""

__version__ = "0.1.0"
__all__ = ["commit", "index", "objects", "tree"]