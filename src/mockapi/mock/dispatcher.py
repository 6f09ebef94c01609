"""
MockAPI Request Dispatcher

Runs one request through the mock pipeline:

    resolve -> build context -> condition -> delay -> status/headers
            -> expand template -> encode (binary or JSON/text)

The dispatcher is framework-neutral: it returns a DispatchResult carrying
the encoded bytes that the HTTP layer sends as-is.
"""

import asyncio
import base64
import json
import logging
from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field

from ..common import stringify_value
from .binary import content_type_for, is_base64_payload
from .conditions import evaluate_condition
from .generator import RequestContext, TemplateEngine
from .matcher import RouteTable


logger = logging.getLogger("mockapi.mock")


@dataclass
class DispatchResult:
    """Status, headers and encoded payload for one mocked response."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    content: bytes = b''
    media_type: Optional[str] = None
    route: Optional[str] = None
    binary: bool = False

    @property
    def is_binary(self) -> bool:
        return self.binary

    @property
    def is_structured(self) -> bool:
        return isinstance(self.body, (dict, list))

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive lookup of a response header."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None


def encode_body(value: Any) -> bytes:
    """
    Encode an expanded response value for the wire.

    Dicts and lists become strict JSON (NaN and Infinity are rejected),
    everything else is stringified as text.

    Raises:
        TypeError: If the value holds objects JSON cannot represent
        ValueError: If the value holds non-finite floats
    """
    if isinstance(value, (dict, list)):
        return json.dumps(value, allow_nan=False).encode('utf-8')
    return stringify_value(value).encode('utf-8')


def check_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Ensure header names and values can be sent as latin-1."""
    for name, value in headers.items():
        try:
            name.encode('latin-1')
            value.encode('latin-1')
        except UnicodeEncodeError:
            raise ValueError(f"Header {name!r} cannot be encoded as latin-1: {value!r}")
    return headers


def json_result(status_code: int, body: Any, route: Optional[str] = None) -> DispatchResult:
    """Build a JSON DispatchResult for the dispatcher's own error bodies."""
    return DispatchResult(
        status_code=status_code,
        body=body,
        content=encode_body(body),
        media_type='application/json',
        route=route
    )


class RequestDispatcher:
    """
    Dispatches requests against the current route table snapshot.

    The table reference is replaced as a whole on reload; each dispatch
    reads it once so an in-flight request never sees a mix of tables.

    Example:
        dispatcher = RequestDispatcher(RouteTable.build(definitions))
        result = await dispatcher.dispatch('GET', '/users/42')
        print(result.status_code, result.body)
    """

    def __init__(
        self,
        table: Optional[RouteTable] = None,
        engine: Optional[TemplateEngine] = None,
        log_requests: bool = True
    ):
        """
        Initialize dispatcher.

        Args:
            table: Route table snapshot
            engine: Template engine (default engine if None)
            log_requests: Log each request at info level
        """
        self.table = table or RouteTable()
        self.engine = engine or TemplateEngine()
        self.log_requests = log_requests

    def swap_table(self, table: RouteTable) -> RouteTable:
        """Install a new route table, returning the previous one."""
        previous, self.table = self.table, table
        return previous

    async def dispatch(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Union[str, List[str]]]] = None,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None
    ) -> DispatchResult:
        """
        Produce the mocked response for one request.

        Args:
            method: HTTP method
            path: Raw request path without query string
            query: Parsed query parameters
            headers: Request headers
            body: Parsed request body (None if absent)

        Returns:
            DispatchResult
        """
        table = self.table
        method = method.upper()

        if self.log_requests:
            logger.info(f"{method} {path}")

        match = table.resolve(method, path)
        if not match.matched:
            logger.warning(f"Route not found: {method} {path}")
            return json_result(404, {
                'error': 'Route not found',
                'method': method,
                'path': path,
                'availableRoutes': table.available_routes()
            })

        logger.debug(f"Matched {match.route.key} with params {match.params}")
        endpoint = table.endpoint_for(match.route)

        try:
            context = RequestContext.build(
                params=match.params,
                query=query,
                body=body,
                headers=headers
            )

            if endpoint.condition:
                outcome = evaluate_condition(endpoint.condition, context)
                if not outcome.value:
                    return json_result(404, {'error': 'Condition not met'}, route=match.route.key)

            if endpoint.delay and endpoint.delay > 0:
                await asyncio.sleep(endpoint.delay / 1000)

            status_code = endpoint.status or 200
            response_headers = check_headers(dict(endpoint.headers))

            expanded = self.engine.expand(endpoint.response, context)

            if isinstance(expanded, str) and is_base64_payload(expanded):
                content = base64.b64decode(expanded)
                logger.debug(f"Sending binary response ({len(content)} bytes)")
                return DispatchResult(
                    status_code=status_code,
                    headers=response_headers,
                    content=content,
                    media_type=content_type_for(endpoint.response),
                    route=match.route.key,
                    binary=True
                )

            if isinstance(expanded, (dict, list)):
                media_type = 'application/json'
            else:
                media_type = 'text/plain'

            return DispatchResult(
                status_code=status_code,
                headers=response_headers,
                body=expanded,
                content=encode_body(expanded),
                media_type=media_type,
                route=match.route.key
            )
        except Exception as e:
            logger.exception(f"Error handling request {method} {path}")
            return json_result(500, {
                'error': 'Failed to process request',
                'message': str(e)
            }, route=match.route.key)
