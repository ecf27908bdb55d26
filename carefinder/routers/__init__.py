"""
API Routers
FastAPI route handlers
"""

from carefinder.routers import entities, events, search

__all__ = ["entities", "events", "search"]
