"""
authgate - Authentication gateway service.

Request validation, origin checking, rate limiting and credential
verification in front of an account store, plus the security event log
those decisions produce.
"""

__version__ = "0.1.0"
