"""
MockAPI Response Generator

Template expression engine for dynamic mock responses.

Features:
- Recursive expansion through nested lists and objects
- Request context placeholders ({{params.id}}, {{query.limit}},
  {{body.user.name}}, {{headers.authorization}})
- Synthetic data via Faker ({{faker.person.firstName}})
- Random and date helpers ({{random.number(1,10)}}, {{date.now}})
- Binary payloads ({{binary.pdf}})
- Type coercion for single-placeholder strings
"""

import json
import logging
import math
import re
import time
from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field

from ..common import first_value, isoformat_utc, lowercase_keys, stringify_value
from .binary import BinaryGenerator
from .fakers import FakerRegistry
from .results import ExpressionResult


logger = logging.getLogger("mockapi.mock.generator")


_MISSING = object()


@dataclass
class RequestContext:
    """Per-request values available to templates and conditions."""

    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.headers = lowercase_keys(self.headers)

    @classmethod
    def build(
        cls,
        params: Optional[Dict[str, str]] = None,
        query: Optional[Dict[str, Union[str, List[str]]]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None
    ) -> 'RequestContext':
        """Assemble a fresh context from the pieces of one request."""
        return cls(
            params=dict(params or {}),
            query=dict(query or {}),
            body=body,
            headers=dict(headers or {})
        )

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())

    def body_value(self, path: str) -> Any:
        """
        Navigate the parsed body by dotted path.

        Numeric segments index into lists. Returns None if any segment is
        missing; never raises.
        """
        current = self.body
        for key in path.split('.'):
            if isinstance(current, dict):
                current = current.get(key, _MISSING)
            elif isinstance(current, list) and key.isdigit():
                index = int(key)
                current = current[index] if index < len(current) else _MISSING
            else:
                return None
            if current is _MISSING:
                return None
        return current


_INTEGER = re.compile(r'^[+-]?\d+$')
_DECIMAL = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')
_RANDOM_NUMBER = re.compile(r'^random\.number\((.*)\)$', re.S)


def _parse_int(text: Optional[str], default: int) -> int:
    """Parse leading integer digits, falling back to default."""
    match = _LEADING_INT.match(text or '')
    return int(match.group(1)) if match else default


def coerce_value(text: str) -> Any:
    """
    Coerce the result of a single-placeholder string.

    Order: number, then "true"/"false", then JSON object/array text.
    Falls back to the original string.

    Example:
        coerce_value('42')       # 42
        coerce_value('true')     # True
        coerce_value('[1, 2]')   # [1, 2]
        coerce_value('true123')  # 'true123'
    """
    stripped = text.strip()
    if stripped:
        if _INTEGER.match(stripped):
            return int(stripped)
        if _DECIMAL.match(stripped):
            number = float(stripped)
            if math.isfinite(number):
                # Integral values below 1e21 are written without a fraction
                if number.is_integer() and abs(number) < 1e21:
                    return int(number)
                return number

    if text == 'true':
        return True
    if text == 'false':
        return False

    if (text.startswith('{') and text.endswith('}')) or (text.startswith('[') and text.endswith(']')):
        try:
            return json.loads(text)
        except ValueError:
            pass

    return text


class TemplateEngine:
    """
    Expands {{...}} placeholders in response templates.

    Every placeholder is evaluated independently; a failing placeholder is
    logged and left as visible text rather than failing the response.

    Example:
        engine = TemplateEngine(faker_seed=42)
        context = RequestContext.build(params={'id': '42'})
        engine.expand({'id': '{{params.id}}', 'name': '{{faker.person.fullName}}'}, context)
        # {'id': 42, 'name': '...'}
    """

    PLACEHOLDER = re.compile(r'\{\{([^}]+)\}\}')

    def __init__(
        self,
        fakers: Optional[FakerRegistry] = None,
        binaries: Optional[BinaryGenerator] = None,
        faker_locale: str = 'en_US',
        faker_seed: Optional[int] = None
    ):
        """
        Initialize template engine.

        Args:
            fakers: Faker registry (created from locale/seed if None)
            binaries: Binary payload generator (shares the registry's Faker if None)
            faker_locale: Locale for a newly created registry
            faker_seed: Seed for reproducible synthetic data
        """
        self.fakers = fakers or FakerRegistry(locale=faker_locale, seed=faker_seed)
        self.binaries = binaries or BinaryGenerator(self.fakers.fake)

    def expand(self, template: Any, context: RequestContext) -> Any:
        """
        Expand a template value, preserving its shape.

        Args:
            template: Scalar, list or dict, possibly containing placeholders
            context: Request context

        Returns:
            Expanded value
        """
        if isinstance(template, str):
            return self.expand_string(template, context)
        if isinstance(template, list):
            return [self.expand(item, context) for item in template]
        if isinstance(template, dict):
            return {key: self.expand(value, context) for key, value in template.items()}
        return template

    def expand_string(self, template: str, context: RequestContext) -> Any:
        """Expand one string; a lone placeholder may yield a non-string value."""
        if '{{' not in template or not self.PLACEHOLDER.search(template):
            return template

        result = self.PLACEHOLDER.sub(
            lambda match: self._substitute(match.group(1), context),
            template
        )

        if self.PLACEHOLDER.fullmatch(template.strip()):
            return coerce_value(result)
        return result

    def _substitute(self, expression: str, context: RequestContext) -> str:
        outcome = self.evaluate(expression.strip(), context)
        if outcome.degraded:
            logger.warning(outcome.warning)
        return stringify_value(outcome.value)

    def evaluate(self, expression: str, context: RequestContext) -> ExpressionResult:
        """
        Evaluate a single placeholder expression (without braces).

        Returns:
            ExpressionResult; degraded results carry the text to leave in
            place of the placeholder
        """
        try:
            if expression.startswith('params.'):
                return ExpressionResult.ok(context.params.get(expression[7:], ''))

            if expression.startswith('query.'):
                value = first_value(context.query.get(expression[6:]))
                return ExpressionResult.ok(value if value is not None else '')

            if expression.startswith('body.'):
                value = context.body_value(expression[5:])
                return ExpressionResult.ok(value if value is not None else '')

            if expression.startswith('headers.'):
                value = context.header(expression[8:])
                return ExpressionResult.ok(value if value is not None else '')

            if expression.startswith('faker.'):
                return self._evaluate_faker(expression)

            if expression.startswith('random.'):
                return self._evaluate_random(expression)

            if expression.startswith('date.'):
                return self._evaluate_date(expression)

            if expression.startswith('binary.'):
                return self._evaluate_binary(expression)

            # Unknown namespace: leave the expression visible
            return ExpressionResult.ok(expression)
        except Exception as e:
            return ExpressionResult.failed(expression, f"Failed to evaluate expression {expression!r}: {e}")

    def _evaluate_faker(self, expression: str) -> ExpressionResult:
        outcome = self.fakers.evaluate(expression[6:])
        if outcome.degraded:
            return ExpressionResult.failed(
                f"{{{{{expression}}}}}",
                f"Failed to evaluate faker expression {expression!r}: {outcome.warning}"
            )
        return outcome

    def _evaluate_random(self, expression: str) -> ExpressionResult:
        fake = self.fakers.fake

        if expression == 'random.uuid':
            return ExpressionResult.ok(fake.uuid4())

        if expression == 'random.boolean':
            return ExpressionResult.ok(fake.boolean())

        match = _RANDOM_NUMBER.match(expression)
        if match:
            bounds = match.group(1).split(',')
            minimum = _parse_int(bounds[0], 0)
            maximum = _parse_int(bounds[1] if len(bounds) > 1 else None, 100)
            try:
                return ExpressionResult.ok(fake.random_int(min=minimum, max=maximum))
            except ValueError as e:
                return ExpressionResult.failed(expression, f"Invalid range in {expression!r}: {e}")

        return ExpressionResult.failed(expression, f"Unsupported random expression {expression!r}")

    def _evaluate_date(self, expression: str) -> ExpressionResult:
        if expression == 'date.now':
            return ExpressionResult.ok(isoformat_utc())

        if expression == 'date.timestamp':
            return ExpressionResult.ok(str(int(time.time() * 1000)))

        if expression in ('date.past', 'date.future', 'date.recent'):
            outcome = self.fakers.evaluate(expression)
            if outcome.degraded:
                return ExpressionResult.failed(expression, outcome.warning)
            return outcome

        return ExpressionResult.failed(expression, f"Unsupported date expression {expression!r}")

    def _evaluate_binary(self, expression: str) -> ExpressionResult:
        kind = expression[7:]
        kinds = self.binaries.kinds
        if kind not in kinds:
            return ExpressionResult.failed(
                expression,
                f"Unsupported binary kind {kind!r}; expected one of {', '.join(kinds)}"
            )
        return ExpressionResult.ok(self.binaries.encode(kind))
