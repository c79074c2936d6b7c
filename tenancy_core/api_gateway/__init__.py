"""
API Gateway Module

Main FastAPI application with tenant isolation and all API endpoints.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
