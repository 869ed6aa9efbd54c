"""
API routes package.
"""

from app.api import pricing_config, quotes

__all__ = [
    "pricing_config",
    "quotes",
]
