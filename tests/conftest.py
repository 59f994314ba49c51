import itertools
from unittest import mock

import pytest
from django.apps import apps
from django.contrib.auth.models import User
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from Profile.models import Follow


@pytest.fixture(autouse=True)
def clean_process_state():
    """Cache and the per-process registries outlive a test's database rollback."""
    cache.clear()
    config = apps.get_app_config('chatting')
    config.presence._connections.clear()
    config.rooms._rooms.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(username=None, **profile_fields):
        username = username or f"user{next(counter)}"
        user = User.objects.create_user(username=username, password="pass1234")
        if profile_fields:
            for key, value in profile_fields.items():
                setattr(user.profile, key, value)
            user.profile.save()
        return User.objects.select_related('profile').get(pk=user.pk)
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice", full_name="Alice A")


@pytest.fixture
def bob(make_user):
    return make_user("bob", full_name="Bob B")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def follow():
    def _follow(follower, following):
        return Follow.objects.create(follower=follower, following=following)
    return _follow


@pytest.fixture
def block():
    def _block(blocker, blocked):
        blocker.profile.blocked_users.add(blocked)
    return _block


@pytest.fixture
def token_for():
    def _token(user):
        return str(AccessToken.for_user(user))
    return _token


@pytest.fixture
def blob():
    """Stand-in for blob storage: uploads return a URL derived from the path."""
    with mock.patch("core.media.put") as put, mock.patch("core.media.del_") as delete:
        put.side_effect = lambda path, body: {"url": f"https://blob.test/{path}"}
        yield mock.Mock(put=put, delete=delete)


@pytest.fixture
def image_file():
    def _image(name="photo.png", size=128):
        return SimpleUploadedFile(name, b"\x89PNG" + b"0" * size, content_type="image/png")
    return _image
