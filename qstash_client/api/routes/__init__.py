"""
API routes module.
"""

from qstash_client.api.routes.health import router as health_router

__all__ = ["health_router"]
