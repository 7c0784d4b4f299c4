"""
API module.
Contains the FastAPI application hosting the receiver.
"""

from qstash_client.api.main import create_app

__all__ = ["create_app"]
