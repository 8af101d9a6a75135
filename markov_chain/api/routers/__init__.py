"""
API Routers Package
Exposes all route modules for the chain service
"""

from . import chain_router

__all__ = [
    "chain_router",
]
