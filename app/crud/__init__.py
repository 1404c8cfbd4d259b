# app/crud/__init__.py

from .crud_demo_request import demo_request
