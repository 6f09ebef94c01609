"""
MockAPI Route Compiler

Turns declared "METHOD /path" strings into matchable routes.

Features:
- Express-style named parameters (/users/:id)
- Bare wildcard segments (/files/*)
- Full-path anchoring (no prefix matches)
- Specificity ranking for overlapping declarations
"""

import re
from typing import List, Any, Optional, Tuple
from dataclasses import dataclass


HTTP_METHODS = ('GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD', 'OPTIONS')


class MalformedRouteError(ValueError):
    """Raised when a route declaration is not "<VERB> /<path>"."""


@dataclass(frozen=True)
class RouteDeclaration:
    """A declared route, exactly as written in the config."""

    method: str
    path_pattern: str
    raw: str = ""


@dataclass(frozen=True)
class CompiledRoute:
    """A route declaration compiled into an anchored regex."""

    method: str
    normalized_path: str
    param_names: Tuple[str, ...]
    pattern: re.Pattern
    declaration: RouteDeclaration
    index: int = 0
    group_kinds: Tuple[str, ...] = ()  # 'param' or 'wildcard', in group order

    @property
    def key(self) -> str:
        """Canonical key used to look up the endpoint definition."""
        return f"{self.method} {self.normalized_path}"

    @property
    def segments(self) -> List[str]:
        return [s for s in self.normalized_path.split('/') if s]

    @property
    def literal_segment_count(self) -> int:
        return sum(
            1 for s in self.segments
            if not s.startswith(':') and '*' not in s
        )

    def specificity(self) -> Tuple[int, int, int]:
        """
        Sort key for ranking overlapping routes (lower sorts first).

        Fewer named parameters wins, then more segments, then more
        literal segments.
        """
        return (
            len(self.param_names),
            -len(self.segments),
            -self.literal_segment_count
        )

    def match(self, path: str) -> Optional[Tuple[str, ...]]:
        """Return captured groups if the whole path matches, else None."""
        found = self.pattern.fullmatch(path)
        if not found:
            return None
        return found.groups()


def normalize_path(path: str) -> str:
    """
    Normalize a request or route path.

    Ensures a leading slash and drops a trailing slash (except for root).
    """
    if not path.startswith('/'):
        path = '/' + path
    if len(path) > 1 and path.endswith('/'):
        path = path.rstrip('/') or '/'
    return path


def parse_declaration(declaration: str) -> RouteDeclaration:
    """
    Split a "METHOD /path" string into a RouteDeclaration.

    Raises:
        MalformedRouteError: If the verb or path is missing or invalid
    """
    if not isinstance(declaration, str):
        raise MalformedRouteError(f"Route must be a string, got {type(declaration).__name__}")

    parts = re.split(r'\s+', declaration.strip(), maxsplit=1)
    if len(parts) != 2 or not parts[1]:
        raise MalformedRouteError(
            f'Invalid route format: {declaration}. Expected format: "METHOD /path"'
        )

    method = parts[0].upper()
    path = parts[1]

    if method not in HTTP_METHODS:
        raise MalformedRouteError(
            f"Invalid HTTP method '{parts[0]}' in route: {declaration}. "
            f"Supported methods: {', '.join(HTTP_METHODS)}"
        )
    if not path.startswith('/'):
        raise MalformedRouteError(
            f'Invalid route format: {declaration}. Path must start with "/"'
        )

    return RouteDeclaration(method=method, path_pattern=path, raw=declaration)


def _path_to_regex(path: str) -> Tuple[str, List[str], List[str]]:
    """
    Convert an Express-style path into a regex source, parameter names
    and the kind of each capture group.

    /users/:id/posts/:postId -> /users/([^/]+)/posts/([^/]+)
    """
    param_names = []
    group_kinds = []
    parts = []
    i = 0

    while i < len(path):
        char = path[i]
        if char == ':':
            end = path.find('/', i)
            if end == -1:
                end = len(path)
            name = path[i + 1:end]
            if not name:
                # A lone colon is literal text
                parts.append(re.escape(char))
                i += 1
                continue
            param_names.append(name)
            group_kinds.append('param')
            parts.append(r'([^/]+)')
            i = end
        elif char == '*':
            group_kinds.append('wildcard')
            parts.append(r'(.*)')
            i += 1
        else:
            parts.append(re.escape(char))
            i += 1

    return ''.join(parts), param_names, group_kinds


def compile_route(declaration: Any, index: int = 0) -> CompiledRoute:
    """
    Compile a route declaration.

    Args:
        declaration: "METHOD /path" string or a RouteDeclaration
        index: Position in the original declaration order

    Returns:
        CompiledRoute with anchored pattern and ordered parameter names

    Raises:
        MalformedRouteError: If the declaration does not parse
    """
    if not isinstance(declaration, RouteDeclaration):
        declaration = parse_declaration(declaration)

    normalized = normalize_path(declaration.path_pattern)
    regex_source, param_names, group_kinds = _path_to_regex(normalized)

    try:
        pattern = re.compile(regex_source)
    except re.error as e:
        raise MalformedRouteError(f"Cannot compile route {declaration.raw}: {e}") from e

    return CompiledRoute(
        method=declaration.method,
        normalized_path=normalized,
        param_names=tuple(param_names),
        pattern=pattern,
        declaration=declaration,
        index=index,
        group_kinds=tuple(group_kinds)
    )


def sort_by_specificity(routes: List[CompiledRoute]) -> List[CompiledRoute]:
    """
    Rank routes most specific first.

    sorted() is stable, so routes that tie on every criterion keep their
    declaration order.
    """
    return sorted(routes, key=lambda r: (r.specificity(), r.index))
