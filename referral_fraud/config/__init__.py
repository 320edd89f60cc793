# Configuration
from .settings import Settings, get_settings, settings
from .reference import ReferenceData, ReferenceDataLoader

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "ReferenceData",
    "ReferenceDataLoader",
]
