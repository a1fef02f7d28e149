import pytest
from fastapi import status
from fastapi.testclient import TestClient

import errors
from conftest import TEST_PASSWORD, unique_username


def test_format_validation_errors_drops_body_prefix():
    message = errors.format_validation_errors(
        [
            {"loc": ("body", "company"), "msg": "Field required"},
            {"loc": ("body", "status"), "msg": "Input should be 'applied', 'interview', 'offer' or 'rejected'"},
        ]
    )
    assert message == (
        "Validation error: company: Field required; "
        "status: Input should be 'applied', 'interview', 'offer' or 'rejected'"
    )


def test_format_validation_errors_for_unparseable_json():
    message = errors.format_validation_errors(
        [{"type": "json_invalid", "loc": ("body", 1), "msg": "JSON decode error"}]
    )
    assert message == "Validation error: Invalid JSON body"


def test_format_validation_errors_keeps_list_positions():
    message = errors.format_validation_errors(
        [{"type": "string_type", "loc": ("body", "skills", 0), "msg": "Input should be a valid string"}]
    )
    assert message == "Validation error: skills.0: Input should be a valid string"


def test_format_validation_errors_without_location():
    assert errors.format_validation_errors([{"msg": "Value error, bad"}]) == "Validation error: Value error, bad"


@pytest.mark.parametrize(
    "error_class,expected_status",
    [
        (errors.ValidationError, 400),
        (errors.Unauthorized, 401),
        (errors.Forbidden, 403),
        (errors.NotFound, 404),
        (errors.InternalError, 500),
    ],
)
def test_error_taxonomy_status_codes(error_class, expected_status):
    error = error_class()
    assert error.status_code == expected_status
    assert error.message == error_class.default_message
    assert isinstance(error, errors.TrackerError)


def test_unknown_route_returns_message(anonymous_client: TestClient):
    response = anonymous_client.get("/api/nothing-here")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Not Found"}


def test_wrong_method_returns_message(client_factory):
    client, _ = client_factory()
    response = client.delete("/api/stats")
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json() == {"message": "Method Not Allowed"}


def test_malformed_json_is_a_validation_error(client_factory):
    client, _ = client_factory()
    response = client.post(
        "/api/applications", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Validation error: Invalid JSON body"}


def test_non_integer_id_is_a_validation_error(client_factory):
    client, _ = client_factory()
    response = client.get("/api/applications/abc")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "application_id" in response.json()["message"]


def test_internal_error_hides_details(client_factory, store, monkeypatch):
    client, _ = client_factory()

    def broken(*args, **kwargs):
        raise errors.InternalError("connection string postgres://secret@db leaked")

    monkeypatch.setattr(store, "list_by_owner", broken)
    response = client.get("/api/applications")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error"}


def test_unexpected_exception_becomes_generic_500(app, store, monkeypatch):
    client = TestClient(app, raise_server_exceptions=False)
    registered = client.post("/api/register", json={"username": unique_username(), "password": TEST_PASSWORD})
    assert registered.status_code == status.HTTP_201_CREATED

    def broken(*args, **kwargs):
        raise KeyError("internal bookkeeping")

    monkeypatch.setattr(store, "list_by_owner", broken)
    response = client.get("/api/stats")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error"}
