"""
Process Scan Platform
Model package — shared SQLAlchemy instance.

All model modules import ``db`` from here:

    from app.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
