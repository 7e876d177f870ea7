"""
Pydantic schemas for CIRY Backend.

Contains all API request/response schemas organized by module.
"""

from .common import BaseSchema
from .responses import StandardSuccessResponse, StandardErrorResponse

__all__ = ["BaseSchema", "StandardSuccessResponse", "StandardErrorResponse"]
