"""
Worker entry point for leaderboard refresh tasks.

    celery -A celery_worker worker --loglevel=info
"""

from app.core.celery_app import celery_app

__all__ = ["celery_app"]
