"""
HTTP API for vehicle damage claims.

This module provides the REST surface using:
- FastAPI for routing and request validation
- Pillow for resizing uploaded damage photos
"""

from .app import app, main
from .images import ImageValidationError, process_image

__all__ = ["app", "main", "ImageValidationError", "process_image"]
