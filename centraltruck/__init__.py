"""
Central Truck - Freight Operations Authentication Core
======================================================

Credential verification, brute-force throttling, session expiry and
password rotation for the Central Truck freight record-keeping client.

Security Notice:
- No passwords, salts or hashes are logged
- Every login failure looks the same to the caller
- Sessions expire on a fixed deadline
"""

from centraltruck.core.config import CentralTruckConfig
from centraltruck.core.logging import get_secure_logger

__version__ = "0.1.0"
__author__ = "Central Truck Team"

__all__ = ["CentralTruckConfig", "get_secure_logger", "__version__"]
