"""ApiClient: headers, URL building and status -> Result mapping."""

from unittest.mock import Mock

import pytest
import requests

from tractor_sales.services.api_client import ApiClient
from tractor_sales.services.results import ApiError, AuthExpired, Ok


def response(status, body=None):
    resp = Mock()
    resp.status_code = status
    if body is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def http():
    return Mock()


def test_bearer_header_attached_when_token_set(http):
    http.request.return_value = response(200, [])
    ApiClient("http://api.test/", "abc", http=http).list_new_vehicles()

    method, url = http.request.call_args.args
    headers = http.request.call_args.kwargs["headers"]
    assert method == "GET"
    assert url == "http://api.test/vehicles/new"
    assert headers["Authorization"] == "Bearer abc"
    assert headers["Content-Type"] == "application/json"


def test_no_authorization_header_without_token(http):
    http.request.return_value = response(200, {"token": "t"})
    ApiClient("http://api.test", http=http).login({"email": "a@b.c", "password": "x"})

    kwargs = http.request.call_args.kwargs
    assert "Authorization" not in kwargs["headers"]
    assert kwargs["json"] == {"email": "a@b.c", "password": "x"}


def test_with_token_keeps_transport_and_base(http):
    http.request.return_value = response(200, {"user": {}})
    ApiClient("http://api.test", http=http, timeout=3).with_token("new").me()

    kwargs = http.request.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer new"
    assert kwargs["timeout"] == 3


def test_success_maps_to_ok(http):
    http.request.return_value = response(201, {"id": "s1"})
    result = ApiClient("http://api.test", "t", http=http).create_normal_sale({"x": 1})

    assert isinstance(result, Ok)
    assert result.ok and not result.auth_expired
    assert result.data == {"id": "s1"}
    assert result.status == 201


def test_empty_success_body_is_none(http):
    http.request.return_value = response(204)
    result = ApiClient("http://api.test", "t", http=http).delete_new_vehicle("v1")
    assert result.ok
    assert result.data is None


def test_401_maps_to_auth_expired(http):
    http.request.return_value = response(401, {"message": "Token expired"})
    result = ApiClient("http://api.test", "t", http=http).get_analytics()

    assert isinstance(result, AuthExpired)
    assert result.auth_expired and not result.ok
    assert result.message_or("x") == "Token expired"


def test_other_errors_carry_server_message(http):
    http.request.return_value = response(400, {"message": "Vehicle already sold"})
    result = ApiClient("http://api.test", "t", http=http).create_exchange_sale({})

    assert isinstance(result, ApiError)
    assert result.status == 400
    assert result.message_or("Failed to record exchange sale") == "Vehicle already sold"


def test_error_without_message_uses_default(http):
    http.request.return_value = response(500)
    result = ApiClient("http://api.test", "t", http=http).get_payment_alerts()
    assert result.message_or("Failed to load") == "Failed to load"


def test_transport_failure_is_an_error_not_an_exception(http):
    http.request.side_effect = requests.Timeout("slow")
    result = ApiClient("http://api.test", "t", http=http).list_used_vehicles()

    assert isinstance(result, ApiError)
    assert result.status is None
    assert result.data is None


def test_list_sales_drops_empty_params(http):
    http.request.return_value = response(200, {"sales": []})
    ApiClient("http://api.test", "t", http=http).list_sales(page=2, limit=20, status=None)
    assert http.request.call_args.kwargs["params"] == {"page": 2, "limit": 20}


@pytest.mark.parametrize(
    "call, method, path",
    [
        (lambda c: c.update_new_vehicle("v1", {"model": "X"}), "PUT", "/vehicles/new/v1"),
        (lambda c: c.get_sale("s9"), "GET", "/sales/s9"),
        (lambda c: c.mark_notification_read("n1"), "PUT", "/notifications/n1/read"),
        (lambda c: c.mark_all_notifications_read(), "PUT", "/notifications/mark-all-read"),
        (lambda c: c.register({"email": "e"}), "POST", "/auth/register"),
    ],
)
def test_endpoint_paths(http, call, method, path):
    http.request.return_value = response(200, {})
    call(ApiClient("http://api.test", "t", http=http))
    assert http.request.call_args.args == (method, "http://api.test" + path)
