"""
Planar map generation and four-color puzzle engine.
"""

__version__ = "0.1.0"
