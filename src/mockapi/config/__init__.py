"""
MockAPI Config Module

Loading and validation of JSON/YAML mock definitions with profiles.
"""

from .loader import (
    ConfigLoader,
    ConfigError,
    EndpointDefinition,
    MockDefinition,
    SAMPLE_CONFIG,
    render_sample,
    validate_config,
    validate_endpoint
)

__all__ = [
    'ConfigLoader',
    'ConfigError',
    'EndpointDefinition',
    'MockDefinition',
    'SAMPLE_CONFIG',
    'render_sample',
    'validate_config',
    'validate_endpoint',
]
