from unittest.mock import Mock

import pytest
import requests

from core.errors import UpstreamError
from core.utils.http import CatalogueGateway

QUERY = "query GetBookById($id: Int!) { books_by_pk(id: $id) { id title } }"


def response(status=200, payload=None, bad_json=False):
    mock = Mock()
    mock.status_code = status
    if bad_json:
        mock.json.side_effect = ValueError("Expecting value")
    else:
        mock.json.return_value = payload if payload is not None else {'data': {'books_by_pk': {'id': 1}}}
    return mock


@pytest.fixture
def http_session():
    session = requests.Session()
    session.post = Mock()
    return session


@pytest.fixture
def gateway(http_session, fake_clock):
    return CatalogueGateway(
        api_url="https://catalogue.test/graphql",
        api_key="secret",
        min_interval=1.0,
        max_retries=3,
        backoff_base=2.0,
        session=http_session,
        clock=fake_clock,
        sleep=fake_clock.sleep
    )


def test_successful_call_returns_data(gateway, http_session):
    http_session.post.return_value = response()

    data = gateway.call(QUERY, {'id': 1})

    assert data == {'books_by_pk': {'id': 1}}
    assert gateway.last_attempts == 1
    _, kwargs = http_session.post.call_args
    assert kwargs['json'] == {'query': QUERY, 'variables': {'id': 1}}
    assert http_session.headers['Authorization'] == 'Bearer secret'


def test_two_failures_then_success(gateway, http_session, fake_clock):
    http_session.post.side_effect = [
        requests.ConnectionError("connection reset"),
        response(status=503),
        response(),
    ]

    data = gateway.call(QUERY, {'id': 1})

    assert data == {'books_by_pk': {'id': 1}}
    assert gateway.last_attempts == 3
    assert http_session.post.call_count == 3
    # Backoff of 2s then 4s; pacing needs no extra wait after a backoff
    assert fake_clock.sleeps == [2.0, 4.0]


def test_retries_exhausted(gateway, http_session, fake_clock):
    http_session.post.side_effect = requests.Timeout("read timed out")

    with pytest.raises(UpstreamError) as excinfo:
        gateway.call(QUERY, {'id': 1})

    assert excinfo.value.attempts == 4
    assert "4 attempts" in str(excinfo.value)
    assert http_session.post.call_count == 4
    assert fake_clock.sleeps == [2.0, 4.0, 8.0]


def test_rate_limited_response_is_retried(gateway, http_session):
    http_session.post.side_effect = [response(status=429), response()]

    gateway.call(QUERY)

    assert gateway.last_attempts == 2


@pytest.mark.parametrize("failure", [
    response(status=400),
    response(status=404),
    response(bad_json=True),
    response(payload={'errors': [{'message': 'field "x" not found'}]}),
    response(payload={'data': None}),
])
def test_permanent_failures_are_not_retried(gateway, http_session, fake_clock, failure):
    http_session.post.return_value = failure

    with pytest.raises(UpstreamError) as excinfo:
        gateway.call(QUERY)

    assert excinfo.value.attempts == 1
    assert http_session.post.call_count == 1
    assert fake_clock.sleeps == []


def test_calls_are_paced_from_request_start(gateway, http_session, fake_clock):
    starts = []

    def record_start(*args, **kwargs):
        starts.append(fake_clock())
        fake_clock.advance(0.25)  # request duration
        return response()

    http_session.post.side_effect = record_start

    for _ in range(4):
        gateway.call(QUERY)

    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert len(gaps) == 3
    assert all(gap >= 1.0 - 1e-9 for gap in gaps)
    # Only the remainder of the interval is slept, not a full second
    assert all(abs(s - 0.75) < 1e-9 for s in fake_clock.sleeps)
