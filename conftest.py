import json

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from users.models import MusicProfile

User = get_user_model()

@pytest.fixture(autouse=True)
def clear_cache():
    # generation locks live in the cache
    cache.clear()
    yield
    cache.clear()

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(email=None, top_tracks=None, raw_profile=None, **extra):
        counter["n"] += 1
        user = User.objects.create_user(
            email=email or f"member{counter['n']}@test.com",
            password="test123",
            **extra,
        )
        if top_tracks is not None:
            MusicProfile.objects.create(user=user, unified_top_tracks=json.dumps(top_tracks))
        elif raw_profile is not None:
            MusicProfile.objects.create(user=user, unified_top_tracks=raw_profile)
        return user

    return _make_user

@pytest.fixture
def user(db):
    return User.objects.create_user(
        email="test@test.com",
        password="test123"
    )

@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client

@pytest.fixture
def client_for():
    def _client_for(some_user):
        client = APIClient()
        client.force_authenticate(user=some_user)
        return client

    return _client_for
