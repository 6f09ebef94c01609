"""
MockAPI Docs Module

OpenAPI document generation for Swagger UI.
"""

from .openapi import OpenAPIGenerator, ERROR_DESCRIPTIONS

__all__ = [
    'OpenAPIGenerator',
    'ERROR_DESCRIPTIONS',
]
