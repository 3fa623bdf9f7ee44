"""
DataLive - API documentation analyzer and endpoint execution service.
"""

__version__ = "0.1.0"
