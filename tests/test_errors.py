import pytest

from core.errors import AlreadyExists, NotFound, PermissionDenied
from core.exceptions import GENERIC_MESSAGE, api_exception_handler


def test_app_errors_become_fail_envelopes():
    response = api_exception_handler(NotFound("Post not found"), {})
    assert response.status_code == 404
    assert response.data == {"status": "fail", "message": "Post not found"}

    response = api_exception_handler(AlreadyExists("You have already liked this post"), {})
    assert response.status_code == 400


def test_unexpected_errors_are_masked():
    response = api_exception_handler(RuntimeError("db password leaked"), {})
    assert response.status_code == 500
    assert response.data == {"status": "error", "message": GENERIC_MESSAGE}


def test_debug_adds_stack_trace(settings):
    settings.DEBUG = True
    response = api_exception_handler(PermissionDenied("nope"), {})
    assert response.data["status"] == "fail"
    assert response.data["message"] == "nope"
    assert "PermissionDenied" in response.data["stackTrace"]


def test_app_error_status_label():
    assert NotFound().status == "fail"
    assert NotFound().message == "Resource not found"


@pytest.mark.django_db
def test_unknown_route(client):
    response = client.get("/api/nowhere/")
    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "/api/nowhere/ Route not found"}


@pytest.mark.django_db
def test_unauthenticated_request():
    from rest_framework.test import APIClient

    response = APIClient().get("/api/posts/feed/")
    assert response.status_code == 401
    assert response.json()["status"] == "fail"


@pytest.mark.django_db
def test_serializer_errors_surface_first_field(alice, client_for):
    response = client_for(alice).patch("/api/users/me/", {"messagePreference": "nobody"}, format="json")
    assert response.status_code == 400
    assert response.json()["message"].startswith("messagePreference:")


@pytest.mark.django_db
def test_empty_profile_update(alice, client_for):
    response = client_for(alice).patch("/api/users/me/", {}, format="json")
    assert response.status_code == 400
    assert response.json()["message"] == "Please provide at least one field to update"
