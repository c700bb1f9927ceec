"""
Channel Plugin System for the Platform Channel Host

This package provides the channel plugin contract, the channel registry and
the platform info responder.
"""

__version__ = "1.0.0"
