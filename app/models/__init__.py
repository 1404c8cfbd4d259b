# app/models/__init__.py
# Import all models so Base.metadata knows every table

from app.db.base_class import Base
from app.models.demo_request import DemoRequest, DemoScheduleLock

__all__ = [
    "Base",
    "DemoRequest",
    "DemoScheduleLock",
]
