import json
from unittest.mock import patch

import pytest

from users.models import LastFmAccount, MusicProfile

PROFILE_URL = "/api/profile/music/"
ANALYZE_URL = "/api/music/analyze/"
LASTFM_URL = "/api/music/lastfm/connect/"


@pytest.mark.django_db
def test_profile_requires_auth(client):
    response = client.get(PROFILE_URL)
    assert response.status_code == 401


@pytest.mark.django_db
def test_get_missing_profile(auth_client):
    response = auth_client.get(PROFILE_URL)

    assert response.status_code == 404
    assert response.data["error"] == "no_music_profile"


@pytest.mark.django_db
def test_get_profile_parses_stored_tracks(auth_client, user):
    MusicProfile.objects.create(
        user=user,
        unified_top_tracks=json.dumps([{"name": "Song", "artist": "Band"}]),
        sources=["lastfm"],
    )

    response = auth_client.get(PROFILE_URL)

    assert response.status_code == 200
    assert response.data["unified_top_tracks"] == [{"name": "Song", "artist": "Band"}]
    assert response.data["sources"] == ["lastfm"]


@pytest.mark.django_db
def test_get_profile_with_corrupt_json(auth_client, user):
    MusicProfile.objects.create(user=user, unified_top_tracks="{not json")

    response = auth_client.get(PROFILE_URL)

    assert response.status_code == 200
    assert response.data["unified_top_tracks"] is None


@pytest.mark.django_db
def test_put_creates_then_replaces_profile(auth_client, user):
    tracks = [
        {"name": "Song", "artists": [{"name": "Band"}], "spotifyId": "sp1", "popularity": 80},
    ]

    first = auth_client.put(
        PROFILE_URL, {"unified_top_tracks": tracks, "sources": ["spotify"]}, format="json"
    )
    second = auth_client.put(PROFILE_URL, {"unified_top_tracks": []}, format="json")

    assert first.status_code == 201
    assert first.data["unified_top_tracks"] == tracks
    assert second.status_code == 200
    assert second.data["unified_top_tracks"] == []

    profile = MusicProfile.objects.get(user=user)
    assert profile.sources == ["spotify"]
    assert profile.last_analyzed is not None


@pytest.mark.django_db
def test_put_rejects_track_without_name(auth_client, user):
    response = auth_client.put(
        PROFILE_URL, {"unified_top_tracks": [{"artist": "Band"}]}, format="json"
    )

    assert response.status_code == 400
    assert not MusicProfile.objects.filter(user=user).exists()


@pytest.mark.django_db
@pytest.mark.parametrize("artist", [{"name": 5}, 1975, ["Band"]])
def test_put_rejects_artist_without_text_name(auth_client, user, artist):
    response = auth_client.put(
        PROFILE_URL, {"unified_top_tracks": [{"name": "Song", "artist": artist}]}, format="json"
    )

    assert response.status_code == 400
    assert not MusicProfile.objects.filter(user=user).exists()


@pytest.mark.django_db
def test_put_accepts_lastfm_artist_object(auth_client):
    response = auth_client.put(
        PROFILE_URL,
        {"unified_top_tracks": [{"name": "Song", "artist": {"#text": "Band"}, "playcount": "4"}]},
        format="json",
    )

    assert response.status_code == 201


@pytest.mark.django_db
@patch("users.views.analyze_music_profile.delay")
def test_analyze_without_services(mock_delay, auth_client):
    response = auth_client.post(ANALYZE_URL)

    assert response.status_code == 400
    assert response.data["error"] == "no_music_services"
    mock_delay.assert_not_called()


@pytest.mark.django_db
@patch("users.views.analyze_music_profile.delay")
def test_analyze_queues_task(mock_delay, auth_client, user):
    LastFmAccount.objects.create(user=user, username="someone")

    response = auth_client.post(ANALYZE_URL)

    assert response.status_code == 202
    assert response.data == {"status": "queued"}
    mock_delay.assert_called_once_with(user.id)


@pytest.mark.django_db
def test_lastfm_connect_and_update(auth_client, user):
    created = auth_client.post(LASTFM_URL, {"username": " someone "}, format="json")
    updated = auth_client.post(LASTFM_URL, {"username": "someone_else"}, format="json")

    assert created.status_code == 201
    assert created.data["username"] == "someone"
    assert updated.status_code == 200
    assert LastFmAccount.objects.get(user=user).username == "someone_else"


@pytest.mark.django_db
def test_lastfm_connect_requires_username(auth_client):
    response = auth_client.post(LASTFM_URL, {}, format="json")
    assert response.status_code == 400
