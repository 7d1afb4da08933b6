"""
Gunicorn configuration utilities for FastAPI applications.

This module provides reusable Gunicorn configuration for production deployments
with proper logging, worker management, and graceful shutdown.
"""

from libs.python.gunicorn.config import GunicornApplication, get_gunicorn_config
from libs.python.gunicorn.uvicorn_worker import UvicornWorker

__all__ = ["GunicornApplication", "get_gunicorn_config", "UvicornWorker"]
