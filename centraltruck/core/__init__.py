"""
Core module - Configuration, logging and the authentication core.
"""

from centraltruck.core.config import CentralTruckConfig
from centraltruck.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["CentralTruckConfig", "get_secure_logger", "SecureLogFilter"]
