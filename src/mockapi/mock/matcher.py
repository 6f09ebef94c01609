"""
MockAPI Route Matcher

Resolves an incoming method + path against the declared routes.

Features:
- Exact verb matching (case-insensitive at the edge)
- Full-path regex matching with percent-decoded parameters
- Deterministic precedence among overlapping routes
- Immutable route table snapshots for atomic reloads
"""

import logging
from types import MappingProxyType
from typing import List, Dict, Any, Optional, Tuple, Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import unquote

from ..config.loader import EndpointDefinition
from .routes import (
    CompiledRoute,
    MalformedRouteError,
    compile_route,
    normalize_path,
    sort_by_specificity
)


logger = logging.getLogger("mockapi.mock")


@dataclass
class MatchResult:
    """Result of resolving a request against the route table."""

    matched: bool
    route: Optional[CompiledRoute] = None
    params: Dict[str, str] = field(default_factory=dict)
    reason: str = ""

    @property
    def endpoint_key(self) -> Optional[str]:
        return self.route.key if self.route else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'matched': self.matched,
            'route': self.endpoint_key,
            'params': dict(self.params),
            'reason': self.reason
        }


def match_route(route: CompiledRoute, method: str, path: str) -> Optional[Dict[str, str]]:
    """
    Match a single compiled route.

    Args:
        route: Compiled route
        method: Request method (any case)
        path: Normalized request path

    Returns:
        Decoded path parameters, or None if the route does not match
    """
    if route.method != method.upper():
        return None

    groups = route.match(path)
    if groups is None:
        return None

    # Wildcard groups are positional only; skip them when binding names
    params = {}
    names = iter(route.param_names)
    for kind, value in zip(route.group_kinds, groups):
        if kind != 'param':
            continue
        name = next(names)
        if value is not None:
            params[name] = unquote(value)

    return params


def resolve(method: str, path: str, routes: Iterable[CompiledRoute]) -> MatchResult:
    """
    Find the first matching route in rank order.

    Args:
        method: HTTP method
        path: Raw request path (no query string)
        routes: Compiled routes, already ranked most specific first

    Returns:
        MatchResult with the route and its extracted parameters
    """
    request_path = normalize_path(path)

    for route in routes:
        params = match_route(route, method, request_path)
        if params is not None:
            return MatchResult(
                matched=True,
                route=route,
                params=params,
                reason=f"Matched {route.key}"
            )

    return MatchResult(
        matched=False,
        reason=f"No route matches {method.upper()} {request_path}"
    )


class RouteTable:
    """
    Immutable snapshot of compiled routes and their endpoint definitions.

    A reload builds a new RouteTable and swaps the reference; a table is
    never patched in place.

    Example:
        table = RouteTable.build([
            ('GET /users/:id', EndpointDefinition(response={'id': '{{params.id}}'})),
            ('GET /users/active', EndpointDefinition(response=[])),
        ])
        result = table.resolve('GET', '/users/active')
        endpoint = table.endpoint_for(result.route)
    """

    def __init__(
        self,
        routes: Tuple[CompiledRoute, ...] = (),
        endpoints: Optional[Mapping[str, EndpointDefinition]] = None
    ):
        self._routes = tuple(routes)
        self._endpoints = MappingProxyType(dict(endpoints or {}))

    @classmethod
    def build(
        cls,
        definitions: Iterable[Tuple[str, EndpointDefinition]]
    ) -> 'RouteTable':
        """
        Compile and rank an ordered collection of route definitions.

        Malformed declarations are logged and skipped; the rest load.

        Args:
            definitions: Ordered (route string, EndpointDefinition) pairs

        Returns:
            New RouteTable
        """
        compiled = []
        endpoints = {}

        for index, (declaration, endpoint) in enumerate(definitions):
            try:
                route = compile_route(declaration, index=index)
            except MalformedRouteError as e:
                logger.error(f"Failed to parse route \"{declaration}\": {e}")
                continue

            if route.key in endpoints:
                logger.warning(f"Duplicate route {route.key} (from \"{declaration}\") ignored")
                continue

            endpoints[route.key] = endpoint
            compiled.append(route)

        return cls(tuple(sort_by_specificity(compiled)), endpoints)

    @property
    def routes(self) -> Tuple[CompiledRoute, ...]:
        return self._routes

    @property
    def endpoints(self) -> Mapping[str, EndpointDefinition]:
        return self._endpoints

    def __len__(self) -> int:
        return len(self._routes)

    def resolve(self, method: str, path: str) -> MatchResult:
        """Resolve a request against this snapshot."""
        return resolve(method, path, self._routes)

    def endpoint_for(self, route: CompiledRoute) -> EndpointDefinition:
        """O(1) lookup of a route's endpoint definition."""
        return self._endpoints[route.key]

    def available_routes(self) -> List[str]:
        """Route list in rank order, for 404 bodies and the admin API."""
        return [f"{r.method} {r.normalized_path}" for r in self._routes]
