# =======================================================================================
# gate_service/__init__.py - Package Initialization
# =======================================================================================
"""
OnlyFounders Gate Service

Signed QR entry credentials, gate verification with an audit trail of
every scan, and attendance sessions derived from entry/exit pairs.
"""

__version__ = "1.0.0"
__author__ = "OnlyFounders Platform Team"
