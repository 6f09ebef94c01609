"""
OpenAPI document generation for MockAPI.

Builds an OpenAPI 3.0 specification from route definitions so the mock can
be browsed in Swagger UI. Schemas are inferred from the response templates:
placeholder kinds hint at types and formats, and examples replace common
placeholders with sample values.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional, Tuple

from ..common import isoformat_utc
from ..config import EndpointDefinition


_PATH_PARAM = re.compile(r':([^/]+)')
_BODY_REFERENCE = re.compile(r'\{\{body\.(\w+)\}\}')

ERROR_DESCRIPTIONS: Dict[int, str] = {
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    405: 'Method Not Allowed',
    409: 'Conflict',
    422: 'Unprocessable Entity',
    429: 'Too Many Requests',
    500: 'Internal Server Error',
    502: 'Bad Gateway',
    503: 'Service Unavailable'
}


class OpenAPIGenerator:
    """
    Generates an OpenAPI 3.0 document from route definitions.

    Example:
        generator = OpenAPIGenerator(title="Users API")
        spec = generator.generate([
            ('GET /users/:id', EndpointDefinition(response={'id': '{{params.id}}'})),
        ])
    """

    def __init__(
        self,
        title: str = "MockAPI Generated Documentation",
        version: str = "1.0.0",
        description: str = "Auto-generated API documentation from MockAPI configuration",
        server_url: str = "http://localhost:3000"
    ):
        self.title = title
        self.version = version
        self.description = description
        self.server_url = server_url

    def generate(self, routes: List[Tuple[str, EndpointDefinition]]) -> Dict[str, Any]:
        """
        Build the OpenAPI document.

        Args:
            routes: Ordered (route string, EndpointDefinition) pairs

        Returns:
            OpenAPI 3.0.0 document as a dict
        """
        paths: Dict[str, Dict[str, Any]] = {}

        for route, endpoint in routes:
            method, path = route.strip().split(None, 1)
            method = method.lower()
            path_key = self.convert_path(path)

            paths.setdefault(path_key, {})[method] = self._build_operation(
                method, path, path_key, route, endpoint
            )

        return {
            'openapi': '3.0.0',
            'info': {
                'title': self.title,
                'version': self.version,
                'description': self.description
            },
            'servers': [
                {'url': self.server_url, 'description': 'Mock API Server'}
            ],
            'paths': paths,
            'components': {'schemas': {}}
        }

    @staticmethod
    def convert_path(path: str) -> str:
        """Convert Express-style :param segments to OpenAPI {param}."""
        return _PATH_PARAM.sub(r'{\1}', path)

    def _build_operation(
        self,
        method: str,
        path: str,
        path_key: str,
        route: str,
        endpoint: EndpointDefinition
    ) -> Dict[str, Any]:
        status = endpoint.status or 200
        description = 'Successful response'
        if status >= 400:
            description = ERROR_DESCRIPTIONS.get(status, 'Error Response')

        operation = {
            'operationId': method + re.sub(r'[/{}:*]', '', path_key),
            'summary': f"Mock endpoint for {method.upper()} {path}",
            'description': f"Returns mocked data for {route}",
            'parameters': self._build_parameters(method, path),
            'responses': {
                str(status): {
                    'description': description,
                    'content': {
                        'application/json': {
                            'schema': self.schema_for(endpoint.response),
                            'example': self.example_for(endpoint.response)
                        }
                    }
                }
            }
        }

        if method in ('post', 'put', 'patch'):
            operation['requestBody'] = {
                'content': {
                    'application/json': {
                        'schema': {
                            'type': 'object',
                            'properties': self.body_properties(endpoint.response)
                        }
                    }
                }
            }

        return operation

    @staticmethod
    def _build_parameters(method: str, path: str) -> List[Dict[str, Any]]:
        parameters = [
            {
                'name': name,
                'in': 'path',
                'required': True,
                'schema': {'type': 'string'},
                'description': f"Path parameter: {name}"
            }
            for name in _PATH_PARAM.findall(path)
        ]

        # Common pagination parameters
        if method == 'get':
            parameters.append({
                'name': 'limit',
                'in': 'query',
                'required': False,
                'schema': {'type': 'integer', 'minimum': 1, 'maximum': 100},
                'description': 'Limit the number of results'
            })
            parameters.append({
                'name': 'offset',
                'in': 'query',
                'required': False,
                'schema': {'type': 'integer', 'minimum': 0},
                'description': 'Offset for pagination'
            })

        return parameters

    @classmethod
    def schema_for(cls, template: Any) -> Dict[str, Any]:
        """
        Infer a JSON schema from a response template.

        Lists use their first element; objects list every key as required.
        """
        if isinstance(template, list):
            return {
                'type': 'array',
                'items': cls.schema_for(template[0] if template else {})
            }

        if isinstance(template, dict):
            return {
                'type': 'object',
                'properties': {key: cls.schema_for(value) for key, value in template.items()},
                'required': list(template)
            }

        return cls._scalar_schema(template)

    @staticmethod
    def _scalar_schema(value: Any) -> Dict[str, Any]:
        if isinstance(value, bool):
            return {'type': 'boolean'}
        if isinstance(value, int):
            return {'type': 'integer'}
        if isinstance(value, float):
            return {'type': 'number'}

        if isinstance(value, str) and '{{' in value:
            if 'faker.number' in value or 'random.number' in value:
                return {'type': 'integer'}
            if 'date.' in value or 'faker.date' in value:
                return {'type': 'string', 'format': 'date-time'}
            if 'faker.internet.email' in value:
                return {'type': 'string', 'format': 'email'}
            if 'faker.internet.url' in value:
                return {'type': 'string', 'format': 'uri'}

        return {'type': 'string'}

    @classmethod
    def example_for(cls, template: Any, now: Optional[datetime] = None) -> Any:
        """Replace common placeholders with readable sample values."""
        now = now or datetime.now(timezone.utc)

        if isinstance(template, list):
            return [cls.example_for(item, now) for item in template]
        if isinstance(template, dict):
            return {key: cls.example_for(value, now) for key, value in template.items()}
        if not isinstance(template, str) or '{{' not in template:
            return template

        replacements = [
            (r'\{\{faker\.person\.firstName\}\}', 'John'),
            (r'\{\{faker\.person\.fullName\}\}', 'John Doe'),
            (r'\{\{faker\.internet\.email\}\}', 'john.doe@example.com'),
            (r'\{\{faker\.lorem\.sentence\}\}', 'Lorem ipsum dolor sit amet.'),
            (r'\{\{faker\.lorem\.paragraphs\}\}', 'Lorem ipsum dolor sit amet, consectetur adipiscing elit.'),
            (r'\{\{random\.number\([^)]+\)\}\}', '42'),
            (r'\{\{date\.now\}\}', isoformat_utc(now)),
            (r'\{\{date\.past\}\}', isoformat_utc(now - timedelta(days=1))),
            (r'\{\{(?:params|query|body)\.(\w+)\}\}', r'\1_value'),
        ]

        example = template
        for pattern, value in replacements:
            example = re.sub(pattern, value, example)
        return example

    @classmethod
    def body_properties(cls, template: Any) -> Dict[str, Dict[str, str]]:
        """Collect {{body.<field>}} references as string properties."""
        properties = {}

        if isinstance(template, str):
            for name in _BODY_REFERENCE.findall(template):
                properties[name] = {'type': 'string'}
        elif isinstance(template, dict):
            for value in template.values():
                properties.update(cls.body_properties(value))
        elif isinstance(template, list):
            for item in template:
                properties.update(cls.body_properties(item))

        return properties
