"""
SwipeHouse configuration
"""

from .models import ConfigFormat, Settings, default_search_filters
from .parser import ConfigParser, ConfigParserError, load_settings

__all__ = [
    "Settings",
    "ConfigFormat",
    "ConfigParser",
    "ConfigParserError",
    "default_search_filters",
    "load_settings",
]
