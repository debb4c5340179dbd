"""
WSGI entry point for the Process Scan Platform.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
"""

from app import create_app

app = create_app()
