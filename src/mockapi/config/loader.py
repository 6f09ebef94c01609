"""
MockAPI Config Loader

Loads and validates mock definitions from JSON or YAML files.

Handles two document shapes:
- Plain:    {"GET /users": {...}, "POST /users": {...}}
- Profiles: {"profiles": {"dev": {...}, "demo": {...}}, "default": "dev"}
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

import yaml


logger = logging.getLogger("mockapi.config")


ROUTE_PATTERN = re.compile(r'^(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\s+/.*$', re.I)

SUPPORTED_EXTENSIONS = ('.json', '.yaml', '.yml')


class ConfigError(ValueError):
    """Raised when a config file is missing, unparseable or invalid."""


@dataclass(frozen=True)
class EndpointDefinition:
    """Response contract for one declared route."""

    response: Any = None
    status: int = 200
    delay: float = 0  # milliseconds
    headers: Dict[str, str] = field(default_factory=dict)
    condition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status,
            'delay': self.delay,
            'headers': dict(self.headers),
            'condition': self.condition,
            'response': self.response
        }


RouteDefinitions = List[Tuple[str, EndpointDefinition]]


@dataclass
class MockDefinition:
    """Validated contents of a config file."""

    profiles: Dict[str, RouteDefinitions] = field(default_factory=dict)
    default_profile: Optional[str] = None
    profiled: bool = False

    @property
    def profile_names(self) -> List[str]:
        return list(self.profiles)

    def select_profile(self, name: Optional[str] = None) -> RouteDefinitions:
        """
        Return the ordered route definitions for a profile.

        Plain (unprofiled) configs ignore the name.

        Raises:
            ConfigError: If the profile does not exist
        """
        if not self.profiled:
            return list(self.profiles.get(self.default_profile, []))

        target = name or self.default_profile
        if not target:
            raise ConfigError("No profile specified and no default profile found")

        if target not in self.profiles:
            raise ConfigError(
                f"Profile \"{target}\" not found. "
                f"Available profiles: {', '.join(self.profile_names)}"
            )
        return list(self.profiles[target])


def validate_endpoint(endpoint: Any, route: str) -> EndpointDefinition:
    """
    Validate one endpoint mapping.

    Raises:
        ConfigError: If a field has the wrong type or range
    """
    if not isinstance(endpoint, dict):
        raise ConfigError(f"Endpoint for route \"{route}\" must be an object")

    if 'response' not in endpoint:
        raise ConfigError(f"Endpoint for route \"{route}\" must have a \"response\" property")

    status = endpoint.get('status', 200)
    if isinstance(status, bool) or not isinstance(status, int) or not 100 <= status <= 599:
        raise ConfigError(f"Invalid status code for route \"{route}\": {status}")

    delay = endpoint.get('delay', 0)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        raise ConfigError(f"Invalid delay for route \"{route}\": {delay}")

    headers = endpoint.get('headers', {})
    if headers is None:
        headers = {}
    if not isinstance(headers, dict):
        raise ConfigError(f"Headers for route \"{route}\" must be an object")

    condition = endpoint.get('condition')
    if condition is not None and not isinstance(condition, str):
        raise ConfigError(f"Condition for route \"{route}\" must be a string")

    return EndpointDefinition(
        response=endpoint['response'],
        status=status,
        delay=delay,
        headers={str(k): str(v) for k, v in headers.items()},
        condition=condition
    )


def validate_routes(config: Any, label: str = "config") -> RouteDefinitions:
    """Validate a plain route mapping, preserving declaration order."""
    if not isinstance(config, dict):
        raise ConfigError(f"{label} must be an object mapping \"METHOD /path\" to endpoints")

    routes = []
    for route, endpoint in config.items():
        if not isinstance(route, str) or not ROUTE_PATTERN.match(route.strip()):
            raise ConfigError(
                f"Invalid route format: {route}. Routes must be in format \"METHOD /path\""
            )
        routes.append((route, validate_endpoint(endpoint, route)))
    return routes


def validate_config(config: Any) -> MockDefinition:
    """
    Validate a parsed config document.

    Raises:
        ConfigError: If the document is not a valid plain or profile config
    """
    if not isinstance(config, dict):
        raise ConfigError("Config must be a valid object")

    if isinstance(config.get('profiles'), dict):
        profiles = {}
        for name, profile_config in config['profiles'].items():
            if not isinstance(profile_config, dict):
                raise ConfigError(f"Profile \"{name}\" must be an object")
            profiles[str(name)] = validate_routes(profile_config, label=f"Profile \"{name}\"")

        default = config.get('default') or next(iter(profiles), None)
        return MockDefinition(profiles=profiles, default_profile=default, profiled=True)

    return MockDefinition(
        profiles={'default': validate_routes(config)},
        default_profile='default',
        profiled=False
    )


class ConfigLoader:
    """
    Loader for MockAPI config files.

    Example:
        loader = ConfigLoader("mockapi.yaml")
        definition = loader.load()
        routes = definition.select_profile("demo")
    """

    def __init__(self, file_path: str):
        """
        Initialize config loader.

        Args:
            file_path: Path to a .json, .yaml or .yml file
        """
        self.file_path = Path(file_path)

    def read(self) -> Any:
        """
        Parse the file without validating it.

        Raises:
            ConfigError: If the file is missing, has an unsupported
                extension or cannot be parsed
        """
        if not self.file_path.exists():
            raise ConfigError(f"Config file not found: {self.file_path}")

        extension = self.file_path.suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise ConfigError(
                f"Unsupported config file format: {extension}. Use .json, .yaml, or .yml"
            )

        with open(self.file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        try:
            if extension == '.json':
                return json.loads(content)
            return yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to parse config file: {e}") from e

    def load(self) -> MockDefinition:
        """Parse and validate the file."""
        definition = validate_config(self.read())
        logger.info(f"Loaded config from {self.file_path}")
        return definition

    def load_routes(self, profile: Optional[str] = None) -> RouteDefinitions:
        """Parse, validate and select a profile in one call."""
        definition = self.load()
        routes = definition.select_profile(profile)
        if definition.profiled:
            logger.info(f"Using profile: {profile or definition.default_profile}")
        return routes

    @staticmethod
    def load_from_file(file_path: str, profile: Optional[str] = None) -> RouteDefinitions:
        """
        Convenience method to load route definitions in one call.

        Example:
            routes = ConfigLoader.load_from_file("mockapi.json")
        """
        return ConfigLoader(file_path).load_routes(profile)


SAMPLE_CONFIG: Dict[str, Any] = {
    "GET /users": {
        "status": 200,
        "delay": 200,
        "response": [
            {"id": 1, "name": "{{faker.person.firstName}}", "email": "{{faker.internet.email}}"},
            {"id": 2, "name": "{{faker.person.firstName}}", "email": "{{faker.internet.email}}"}
        ]
    },
    "GET /users/:id": {
        "status": 200,
        "response": {
            "id": "{{params.id}}",
            "name": "{{faker.person.fullName}}",
            "email": "{{faker.internet.email}}",
            "createdAt": "{{date.past}}"
        }
    },
    "POST /users": {
        "status": 201,
        "response": {
            "id": "{{random.number(1,1000)}}",
            "name": "{{body.name}}",
            "email": "{{body.email}}",
            "createdAt": "{{date.now}}"
        }
    },
    "POST /login": {
        "status": 401,
        "condition": "body.password !== 'secret'",
        "response": {"error": "Invalid credentials"}
    },
    "GET /posts": {
        "status": 200,
        "response": [
            {
                "id": 1,
                "title": "{{faker.lorem.sentence}}",
                "content": "{{faker.lorem.paragraphs}}",
                "authorId": "{{random.number(1,10)}}"
            }
        ]
    },
    "GET /reports/export": {
        "status": 200,
        "headers": {"Content-Disposition": "attachment; filename=\"report.pdf\""},
        "response": "{{binary.pdf}}"
    }
}


def render_sample(fmt: str = 'json') -> str:
    """Render the sample config as JSON or YAML text."""
    if fmt in ('yaml', 'yml'):
        return yaml.safe_dump(SAMPLE_CONFIG, sort_keys=False, allow_unicode=True)
    return json.dumps(SAMPLE_CONFIG, indent=2)
