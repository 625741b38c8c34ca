# Configuration package
"""
Configuration package for the MyFatoorah relay
Exports the settings class and its process-wide factory
"""
from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
