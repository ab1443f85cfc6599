from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from tsw_inspector.client import TSWClient, endpoint_path, format_number, normalize_node_path
from tsw_inspector.exceptions import TransportError


def _response(status_code: int = 200, payload=None, json_error: Exception | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload if payload is not None else {"Result": "Success"}
    return response


@pytest.fixture()
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def tsw_client(session) -> TSWClient:
    return TSWClient("secret-key", session=session)


def test_list_root_uses_trailing_slash_and_key_header(tsw_client, session):
    session.request.return_value = _response(payload={"Result": "Success", "Nodes": []})

    response = tsw_client.list()

    assert response.is_success
    assert response.nodes == []
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://localhost:31270/list/")
    assert kwargs["headers"]["DTGCommKey"] == "secret-key"
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert kwargs["timeout"] == 5.0


def test_list_and_get_build_paths(tsw_client, session):
    session.request.return_value = _response(payload={"Result": "Success", "Values": {"Speed": 12.5}})

    tsw_client.list("Cab/Levers")
    response = tsw_client.get("Cab/Levers/Reverser.InputValue")

    urls = [call.args[1] for call in session.request.call_args_list]
    assert urls == [
        "http://localhost:31270/list/Cab/Levers",
        "http://localhost:31270/get/Cab/Levers/Reverser.InputValue",
    ]
    assert response.first_value() == 12.5


def test_set_patches_with_value_query(tsw_client, session):
    session.request.return_value = _response()

    tsw_client.set("Cab/Horn.InputValue", 1.0)

    args, kwargs = session.request.call_args
    assert args == ("PATCH", "http://localhost:31270/set/Cab/Horn.InputValue")
    assert kwargs["params"] == {"value": "1"}


def test_error_result_is_returned_not_raised(tsw_client, session):
    session.request.return_value = _response(payload={"Result": "Error", "Error": "Bad path"})

    response = tsw_client.get("Nope.Value")

    assert not response.is_success
    assert response.error == "Bad path"


def test_non_2xx_raises_transport_error(tsw_client, session):
    session.request.return_value = _response(status_code=403)

    with pytest.raises(TransportError) as excinfo:
        tsw_client.list()

    assert excinfo.value.message == "HTTP error! status: 403"
    assert excinfo.value.remote_status == 403


def test_network_failure_raises_transport_error(tsw_client, session):
    session.request.side_effect = requests.ConnectionError("Connection refused")

    with pytest.raises(TransportError, match="Connection refused"):
        tsw_client.get("Cab.Speed")


def test_malformed_json_raises_transport_error(tsw_client, session):
    session.request.return_value = _response(json_error=ValueError("Expecting value"))

    with pytest.raises(TransportError, match="Malformed JSON"):
        tsw_client.get("Cab.Speed")


def test_path_helpers():
    assert normalize_node_path("Root/Cab/Levers/Reverser") == "Cab/Levers/Reverser"
    assert normalize_node_path("Cab/Root/Thing") == "Cab/Root/Thing"
    assert normalize_node_path("Root") == "Root"
    assert endpoint_path("Root/Cab/Horn", "InputValue") == "Cab/Horn.InputValue"


def test_format_number():
    assert format_number(0.0) == "0"
    assert format_number(-2.0) == "-2"
    assert format_number(0.25) == "0.25"
    assert format_number(12.5) == "12.5"
