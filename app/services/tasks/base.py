"""
Shared imports for Celery tasks.
"""

from app.core.celery_app import celery_app
from app.services.logger import logger

__all__ = ["celery_app", "logger"]
