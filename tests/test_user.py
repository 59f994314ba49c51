import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from user.authentication import resolve_token_user

pytestmark = pytest.mark.django_db


def test_me_reads_cookie_token(alice):
    client = APIClient()
    client.cookies["access"] = str(RefreshToken.for_user(alice).access_token)
    body = client.get("/api/auth/me/").json()
    assert body["data"]["username"] == "alice"
    assert body["data"]["premiumStatus"] is False


def test_me_accepts_bearer_header(alice):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(alice)}")
    assert client.get("/api/auth/me/").json()["data"]["id"] == alice.pk


def test_bad_cookie_token_is_rejected():
    client = APIClient()
    client.cookies["access"] = "not-a-token"
    response = client.get("/api/auth/me/")
    assert response.status_code == 401
    assert response.json()["status"] == "fail"


def test_ws_token_resolves_to_user(alice, client_for):
    token = client_for(alice).get("/api/auth/ws-token/").json()["data"]["ws_token"]
    assert resolve_token_user(token) == alice


def test_resolve_token_user_rejects_garbage(alice):
    assert resolve_token_user("garbage") is None
    assert resolve_token_user(None) is None
    token = str(AccessToken.for_user(alice))
    alice.is_active = False
    alice.save()
    assert resolve_token_user(token) is None
