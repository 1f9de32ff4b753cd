"""
Project configuration.

Modules:
- settings: Django settings
- urls: Root routes
- celery: Celery app for asynchronous tasks
- container: Dependency Injection Container
"""

from .celery import app as celery_app

__all__ = ('celery_app',)
