"""
Shared library for the geossh collector.
"""

__version__ = "0.1.0"
