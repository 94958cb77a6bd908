import logging

import requests
from django.conf import settings

from parties.services.track_unification import dedup_key
from .models import LastFmAccount, MusicProfile, SpotifyAccount

logger = logging.getLogger(__name__)

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_TOP_TRACKS_URL = "https://api.spotify.com/v1/me/top/tracks"
SPOTIFY_TIME_RANGES = ("short_term", "medium_term", "long_term")

LASTFM_URL = "https://ws.audioscrobbler.com/2.0/"
LASTFM_PERIODS = ("7day", "1month", "3month", "6month", "12month", "overall")

PAGE_LIMIT = 50
SERVICE_TRACK_LIMIT = 50
REQUEST_TIMEOUT = (3, 20)


class MusicServiceError(Exception):
    """A streaming service could not be read for this user."""


# ============================================================
# SPOTIFY
# ============================================================

def refresh_spotify_account(spotify):
    response = requests.post(
        SPOTIFY_TOKEN_URL,
        data={
            "grant_type": "refresh_token",
            "refresh_token": spotify.refresh_token,
            "client_id": settings.SPOTIFY_CLIENT_ID,
            "client_secret": settings.SPOTIFY_CLIENT_SECRET,
        },
        timeout=REQUEST_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()
    spotify.update_tokens(data["access_token"], data.get("refresh_token"), data.get("expires_in", 3600))


def get_spotify_access_token(user) -> str | None:
    try:
        spotify = SpotifyAccount.objects.get(user=user)
    except SpotifyAccount.DoesNotExist:
        return None

    if spotify.is_expired:
        try:
            refresh_spotify_account(spotify)
        except requests.RequestException as e:
            raise MusicServiceError(f"Spotify token refresh failed: {e}") from e

    return spotify.access_token


def deduplicate_spotify_tracks(tracks: list) -> list:
    """
    Same name + first artist collapses to the most popular copy,
    result sorted by popularity desc.
    """
    seen = {}
    for track in tracks:
        artists = track.get("artists") or [{}]
        key = f"{track.get('name')}-{artists[0].get('name', '')}"
        current = seen.get(key)
        if current is None or (track.get("popularity") or 0) > (current.get("popularity") or 0):
            seen[key] = track

    return sorted(seen.values(), key=lambda t: t.get("popularity") or 0, reverse=True)


def fetch_spotify_top_tracks(access_token: str) -> list:
    headers = {"Authorization": f"Bearer {access_token}"}
    all_tracks = []

    for time_range in SPOTIFY_TIME_RANGES:
        try:
            response = requests.get(
                SPOTIFY_TOP_TRACKS_URL,
                headers=headers,
                params={"limit": PAGE_LIMIT, "time_range": time_range},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Spotify top tracks ({time_range}) failed: {e}")
            continue

        items = response.json().get("items", [])
        logger.info(f"Fetched {len(items)} Spotify top tracks ({time_range})")
        all_tracks.extend(items)

    return deduplicate_spotify_tracks(all_tracks)[:SERVICE_TRACK_LIMIT]


def spotify_profile_track(track: dict) -> dict:
    artists = track.get("artists") or []
    album = track.get("album") or {}
    return {
        "name": track.get("name"),
        "artist": artists[0].get("name") if artists else None,
        "album": album.get("name") if isinstance(album, dict) else album,
        "spotifyId": track.get("id"),
        "popularity": track.get("popularity"),
    }


# ============================================================
# LAST.FM
# ============================================================

def lastfm_get(params: dict) -> dict | None:
    api_key = getattr(settings, "LAST_FM_API_KEY", None)
    if not api_key:
        logger.error("LAST_FM_API_KEY not set")
        return None

    try:
        response = requests.get(
            LASTFM_URL,
            params={**params, "api_key": api_key, "format": "json"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except requests.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else None
        if status_code == 404:
            logger.info("Last.fm resource not found (404)", extra={"params": params})
            return None
        logger.warning(f"Last.fm HTTP error {status_code}", extra={"params": params})
        return None
    except requests.RequestException as e:
        logger.warning("Last.fm request failed", extra={"params": params, "error": str(e)})
        return None


def _lastfm_artist_name(artist) -> str:
    if isinstance(artist, dict):
        return artist.get("name") or artist.get("#text") or ""
    return artist or ""


def _playcount(track: dict) -> int:
    try:
        return int(track.get("playcount") or 0)
    except (TypeError, ValueError):
        return 0


def deduplicate_lastfm_tracks(tracks: list) -> list:
    """
    Same name + artist collapses to the copy with the highest playcount,
    result sorted by playcount desc.
    """
    seen = {}
    for track in tracks:
        key = f"{track.get('name')}-{_lastfm_artist_name(track.get('artist'))}"
        playcount = _playcount(track)
        current = seen.get(key)
        if current is None or playcount > current["playcount"]:
            seen[key] = {**track, "playcount": playcount}

    return sorted(seen.values(), key=lambda t: t["playcount"], reverse=True)


def fetch_lastfm_top_tracks(username: str) -> list:
    all_tracks = []

    for period in LASTFM_PERIODS:
        data = lastfm_get({
            "method": "user.getTopTracks",
            "user": username,
            "limit": PAGE_LIMIT,
            "period": period,
        })
        tracks = ((data or {}).get("toptracks") or {}).get("track") or []
        logger.info(f"Fetched {len(tracks)} Last.fm top tracks ({period}) for {username}")
        all_tracks.extend(tracks)

    return deduplicate_lastfm_tracks(all_tracks)[:SERVICE_TRACK_LIMIT]


def lastfm_profile_track(track: dict) -> dict:
    album = track.get("album")
    return {
        "name": track.get("name"),
        "artist": _lastfm_artist_name(track.get("artist")) or None,
        "album": album.get("#text") if isinstance(album, dict) else album,
        "lastfmId": track.get("mbid") or None,
        "playcount": track.get("playcount"),
    }


# ============================================================
# PROFILE
# ============================================================

def merge_profile_tracks(service_tracks: dict) -> list:
    """
    service_tracks = {"spotify": [...], "lastfm": [...]} of profile tracks.

    Tracks with the same dedup key are kept once so that a member never
    contributes the same track twice to a party.
    """
    merged = {}
    for service, tracks in service_tracks.items():
        for track in tracks:
            if not track.get("name"):
                continue
            key = dedup_key(track["name"], track.get("artist") or "Unknown")
            existing = merged.get(key)
            if existing is None:
                merged[key] = {**track, "services": [service]}
                continue

            if service not in existing["services"]:
                existing["services"].append(service)
            for field in ("album", "spotifyId", "lastfmId"):
                if not existing.get(field) and track.get(field):
                    existing[field] = track[field]

    return list(merged.values())


def has_connected_service(user) -> bool:
    return (
        SpotifyAccount.objects.filter(user=user).exists()
        or LastFmAccount.objects.filter(user=user).exists()
    )


def build_music_profile(user) -> MusicProfile:
    """
    Pull top tracks from every connected service and overwrite the
    user's MusicProfile. A failing service is logged and left out.
    """
    service_tracks = {}

    try:
        access_token = get_spotify_access_token(user)
    except MusicServiceError as e:
        logger.warning(f"User {user.id}: {e}")
        access_token = None

    if access_token:
        tracks = fetch_spotify_top_tracks(access_token)
        if tracks:
            service_tracks["spotify"] = [spotify_profile_track(t) for t in tracks]

    lastfm = LastFmAccount.objects.filter(user=user).first()
    if lastfm:
        tracks = fetch_lastfm_top_tracks(lastfm.username)
        if tracks:
            service_tracks["lastfm"] = [lastfm_profile_track(t) for t in tracks]

    unified = merge_profile_tracks(service_tracks)

    profile, _ = MusicProfile.objects.get_or_create(user=user)
    profile.set_unified_top_tracks(unified, sources=service_tracks.keys())
    profile.save()

    logger.info(
        f"Music profile built for user {user.id}: "
        f"{len(unified)} tracks from {list(service_tracks)}"
    )
    return profile
