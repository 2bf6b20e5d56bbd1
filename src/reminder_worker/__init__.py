"""Celery worker that runs the abandoned-cart scan."""
