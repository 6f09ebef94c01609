"""
MockAPI Condition Evaluator

Evaluates an endpoint's `condition` string against the request context.

Supported shapes (after request values are substituted):
    "a" === "b"      string equality (single or double quotes)
    "a" !== "b"      string inequality
    10 >= 5          integer comparison: >, <, >=, <=, ==

References params.<name>, query.<name>, body.<dotted.path> and
headers.<name> are replaced by their double-quoted values. Anything that
does not fit one of the shapes passes (fail-open) with a warning.
"""

import logging
import re
from typing import Any

from ..common import first_value, stringify_value
from .generator import RequestContext
from .results import ExpressionResult


logger = logging.getLogger("mockapi.mock.conditions")


_REFERENCE = re.compile(r'\b(params|query|body|headers)\.([A-Za-z0-9_$-]+(?:\.[A-Za-z0-9_$-]+)*)')

_QUOTED = r'''(?:"([^"]*)"|'([^']*)')'''

_STRING_COMPARISON = re.compile(r'^' + _QUOTED + r'\s*(===|!==)\s*' + _QUOTED + r'$')

_INTEGER_COMPARISON = re.compile(
    r'''^(["']?)(?P<left>-?\d+)\1\s*(?P<op>>=|<=|==|>|<)\s*(["']?)(?P<right>-?\d+)\4$'''
)

_INTEGER_OPERATORS = {
    '>': lambda a, b: a > b,
    '<': lambda a, b: a < b,
    '>=': lambda a, b: a >= b,
    '<=': lambda a, b: a <= b,
    '==': lambda a, b: a == b,
}


def _first_not_none(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def _reference_value(namespace: str, name: str, context: RequestContext) -> Any:
    if namespace == 'params':
        return context.params.get(name)
    if namespace == 'query':
        return first_value(context.query.get(name))
    if namespace == 'body':
        return context.body_value(name)
    return context.header(name)


def substitute_references(condition: str, context: RequestContext) -> str:
    """Replace request references with double-quoted literal values."""
    def replace(match):
        value = _reference_value(match.group(1), match.group(2), context)
        return '"' + stringify_value(value) + '"'

    return _REFERENCE.sub(replace, condition)


def evaluate_condition(condition: str, context: RequestContext) -> ExpressionResult:
    """
    Evaluate a condition string.

    Args:
        condition: Condition text, e.g. "query.type === 'premium'"
        context: Request context

    Returns:
        ExpressionResult with a bool value; degraded (and True) when the
        condition could not be evaluated
    """
    try:
        processed = substitute_references(condition, context).strip()
    except Exception as e:
        warning = f"Failed to evaluate condition {condition!r}: {e}"
        logger.warning(warning)
        return ExpressionResult.failed(True, warning)

    match = _STRING_COMPARISON.match(processed)
    if match:
        left = _first_not_none(match.group(1), match.group(2))
        right = _first_not_none(match.group(4), match.group(5))
        equal = left == right
        return ExpressionResult.ok(equal if match.group(3) == '===' else not equal)

    match = _INTEGER_COMPARISON.match(processed)
    if match:
        left, right = int(match.group('left')), int(match.group('right'))
        return ExpressionResult.ok(_INTEGER_OPERATORS[match.group('op')](left, right))

    warning = f"Unsupported condition {condition!r} (evaluated as {processed!r}); treating as true"
    logger.warning(warning)
    return ExpressionResult.failed(True, warning)
