"""
Data Sources Package
Pure API clients for external data sources
"""

from . import overpass_client
from . import async_overpass_client
from . import identity

__all__ = ['overpass_client', 'async_overpass_client', 'identity']
