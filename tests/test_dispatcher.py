"""
Tests for MockAPI Request Dispatcher

Tests the per-request pipeline including:
- Route resolution and 404 bodies
- Condition gating
- Non-blocking delays
- Status, headers and encoding of JSON, text and binary responses
- 500 responses on unexpected errors
"""

import asyncio
import base64
import json
import time
from datetime import date
from unittest.mock import patch

import pytest

from mockapi.config import EndpointDefinition
from mockapi.mock.dispatcher import DispatchResult, RequestDispatcher
from mockapi.mock.generator import TemplateEngine
from mockapi.mock.matcher import RouteTable


@pytest.fixture
def table():
    return RouteTable.build([
        ('GET /users/:id', EndpointDefinition(response={'id': '{{params.id}}'})),
        ('GET /users/active', EndpointDefinition(response=[{'active': True}])),
        ('POST /login', EndpointDefinition(
            response={'error': 'Invalid credentials'},
            status=401,
            condition="body.password !== 'secret'"
        )),
        ('GET /slow', EndpointDefinition(response={'slow': True}, delay=150)),
        ('GET /fast', EndpointDefinition(response={'fast': True})),
        ('GET /text', EndpointDefinition(response='Hello {{query.name}}')),
        ('GET /count', EndpointDefinition(response='{{random.number(3,3)}}')),
        ('GET /report', EndpointDefinition(
            response='{{binary.pdf}}',
            headers={'Content-Disposition': 'attachment; filename="report.pdf"'}
        )),
        ('GET /custom', EndpointDefinition(
            response={'ok': True},
            status=202,
            headers={'Content-Type': 'application/vnd.api+json', 'X-Mock': 'yes'}
        )),
    ])


@pytest.fixture
def dispatcher(table):
    return RequestDispatcher(table=table, engine=TemplateEngine(faker_seed=1), log_requests=False)


def dispatch(dispatcher, method, path, **kwargs):
    return asyncio.run(dispatcher.dispatch(method, path, **kwargs))


class TestDispatchResult:
    """Test DispatchResult helpers."""

    def test_header_lookup_case_insensitive(self):
        result = DispatchResult(status_code=200, headers={'Content-Type': 'text/csv'})

        assert result.header('content-type') == 'text/csv'
        assert result.header('x-missing') is None

    def test_kind_flags(self):
        assert DispatchResult(status_code=200, content=b'x', binary=True).is_binary
        assert not DispatchResult(status_code=200, content=b'x').is_binary
        assert DispatchResult(status_code=200, body=[1]).is_structured
        assert not DispatchResult(status_code=200, body='x').is_structured


class TestResolution:
    """Test route resolution in the pipeline."""

    def test_param_route(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/users/42')

        assert result.status_code == 200
        assert result.body == {'id': 42}
        assert result.content == b'{"id": 42}'
        assert result.media_type == 'application/json'
        assert result.route == 'GET /users/:id'

    def test_literal_route_wins(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/users/active')

        assert result.body == [{'active': True}]

    def test_not_found_body(self, dispatcher, table):
        result = dispatch(dispatcher, 'delete', '/users/1')

        assert result.status_code == 404
        assert result.body == {
            'error': 'Route not found',
            'method': 'DELETE',
            'path': '/users/1',
            'availableRoutes': table.available_routes()
        }

    def test_empty_dispatcher(self):
        result = dispatch(RequestDispatcher(log_requests=False), 'GET', '/')

        assert result.status_code == 404
        assert result.body['availableRoutes'] == []


class TestConditions:
    """Test condition gating."""

    def test_condition_true_serves_endpoint(self, dispatcher):
        result = dispatch(dispatcher, 'POST', '/login', body={'password': 'wrong'})

        assert result.status_code == 401
        assert result.body == {'error': 'Invalid credentials'}

    def test_condition_false_is_404(self, dispatcher):
        result = dispatch(dispatcher, 'POST', '/login', body={'password': 'secret'})

        assert result.status_code == 404
        assert result.body == {'error': 'Condition not met'}
        assert json.loads(result.content) == {'error': 'Condition not met'}


class TestDelay:
    """Test artificial delays."""

    def test_delay_is_applied(self, dispatcher):
        start = time.monotonic()
        result = dispatch(dispatcher, 'GET', '/slow')
        elapsed = time.monotonic() - start

        assert result.body == {'slow': True}
        assert elapsed >= 0.15

    def test_delay_does_not_block_other_requests(self, dispatcher):
        """Test a delayed request does not hold back a concurrent one."""
        async def run():
            finished = []

            async def timed(path):
                await dispatcher.dispatch('GET', path)
                finished.append(path)

            await asyncio.gather(timed('/slow'), timed('/fast'))
            return finished

        assert asyncio.run(run()) == ['/fast', '/slow']


class TestEncoding:
    """Test response encoding."""

    def test_text_response(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/text', query={'name': 'Ada'})

        assert result.body == 'Hello Ada'
        assert result.content == b'Hello Ada'
        assert result.media_type == 'text/plain'

    def test_coerced_scalar(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/count')

        assert result.body == 3
        assert result.content == b'3'
        assert result.media_type == 'text/plain'

    def test_binary_response(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/report')

        assert result.is_binary
        assert result.content.startswith(b'%PDF')
        assert result.media_type == 'application/pdf'
        assert result.header('content-disposition') == 'attachment; filename="report.pdf"'

    def test_declared_headers_and_status(self, dispatcher):
        result = dispatch(dispatcher, 'GET', '/custom')

        assert result.status_code == 202
        assert result.headers == {'Content-Type': 'application/vnd.api+json', 'X-Mock': 'yes'}

    def test_long_base64_literal_treated_as_binary(self):
        payload = base64.b64encode(b'\x00\x01' * 40).decode('ascii')
        table = RouteTable.build([('GET /blob', EndpointDefinition(response=payload))])

        result = dispatch(RequestDispatcher(table=table, log_requests=False), 'GET', '/blob')

        assert result.content == b'\x00\x01' * 40
        assert result.media_type == 'application/octet-stream'


class TestErrors:
    """Test the per-request error guard."""

    def test_unexpected_error_is_500(self, dispatcher):
        with patch.object(dispatcher.engine, 'expand', side_effect=RuntimeError('boom')):
            result = dispatch(dispatcher, 'GET', '/users/1')

        assert result.status_code == 500
        assert result.body == {'error': 'Failed to process request', 'message': 'boom'}

    def test_unserializable_value_is_500(self):
        """Test a value JSON cannot represent fails inside the guard."""
        table = RouteTable.build([
            ('GET /release', EndpointDefinition(response={'released': date(2024, 1, 1)}))
        ])

        result = dispatch(RequestDispatcher(table=table, log_requests=False), 'GET', '/release')

        assert result.status_code == 500
        assert result.body['error'] == 'Failed to process request'
        assert 'not JSON serializable' in result.body['message']
        assert json.loads(result.content) == result.body

    def test_non_finite_float_is_500(self):
        table = RouteTable.build([('GET /ratio', EndpointDefinition(response={'ratio': float('nan')}))])

        result = dispatch(RequestDispatcher(table=table, log_requests=False), 'GET', '/ratio')

        assert result.status_code == 500
        assert b'NaN' not in result.content

    def test_non_latin1_header_is_500(self):
        table = RouteTable.build([
            ('GET /note', EndpointDefinition(response={'ok': True}, headers={'X-Note': '✓ ok'}))
        ])

        result = dispatch(RequestDispatcher(table=table, log_requests=False), 'GET', '/note')

        assert result.status_code == 500
        assert result.headers == {}
        assert 'X-Note' in result.body['message']

    def test_dispatcher_keeps_serving_after_error(self, dispatcher):
        with patch.object(dispatcher.engine, 'expand', side_effect=RuntimeError('boom')):
            dispatch(dispatcher, 'GET', '/users/1')

        assert dispatch(dispatcher, 'GET', '/users/2').body == {'id': 2}


class TestSwapTable:
    """Test replacing the route table."""

    def test_swap_returns_previous(self, dispatcher, table):
        replacement = RouteTable.build([('GET /new', EndpointDefinition(response='new'))])

        previous = dispatcher.swap_table(replacement)

        assert previous is table
        assert dispatch(dispatcher, 'GET', '/new').body == 'new'
        assert dispatch(dispatcher, 'GET', '/users/1').status_code == 404

    def test_in_flight_request_keeps_its_table(self, dispatcher):
        """Test a reload during a delay does not affect the running request."""
        replacement = RouteTable.build([('GET /slow', EndpointDefinition(response={'new': True}))])

        async def run():
            task = asyncio.ensure_future(dispatcher.dispatch('GET', '/slow'))
            await asyncio.sleep(0.01)
            dispatcher.swap_table(replacement)
            return await task

        assert asyncio.run(run()).body == {'slow': True}
