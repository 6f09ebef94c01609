"""
MockAPI Mock Server Module

Declarative HTTP mock server functionality.

This module provides:
- FastAPI-based mock server
- Route compilation and specificity-ranked resolution
- Template expression engine with Faker-backed synthetic data
- Request dispatch with conditions, delays and binary payloads
"""

from .server import MockServer, MockConfig, create_mock_server
from .routes import (
    CompiledRoute,
    MalformedRouteError,
    RouteDeclaration,
    compile_route,
    normalize_path,
    parse_declaration,
    sort_by_specificity
)
from .matcher import MatchResult, RouteTable, match_route, resolve
from .results import ExpressionResult
from .fakers import FakerRegistry
from .binary import BinaryGenerator, content_type_for, is_base64_payload
from .generator import RequestContext, TemplateEngine, coerce_value
from .conditions import evaluate_condition
from .dispatcher import DispatchResult, RequestDispatcher

__all__ = [
    # Server
    'MockServer',
    'MockConfig',
    'create_mock_server',

    # Routes
    'CompiledRoute',
    'MalformedRouteError',
    'RouteDeclaration',
    'compile_route',
    'normalize_path',
    'parse_declaration',
    'sort_by_specificity',

    # Matcher
    'MatchResult',
    'RouteTable',
    'match_route',
    'resolve',

    # Generator
    'ExpressionResult',
    'FakerRegistry',
    'BinaryGenerator',
    'content_type_for',
    'is_base64_payload',
    'RequestContext',
    'TemplateEngine',
    'coerce_value',
    'evaluate_condition',

    # Dispatcher
    'DispatchResult',
    'RequestDispatcher',
]

__version__ = '1.0.0'
