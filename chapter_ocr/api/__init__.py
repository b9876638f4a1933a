"""
API Module - HTTP surface of the OCR server

Exports:
- create_app: FastAPI application factory
- main: command-line launcher (uvicorn)
"""

from .main import create_app, main

__all__ = [
    'create_app',
    'main'
]
