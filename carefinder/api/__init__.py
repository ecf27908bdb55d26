"""
API Application Factory
FastAPI app creation and configuration
"""

from carefinder.api.main import create_app

__all__ = ["create_app"]
