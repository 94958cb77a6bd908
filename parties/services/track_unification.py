"""
Cross-service track matching for party playlists.

Members' stored top tracks come in whatever shape the service that produced
them used (Spotify objects, Last.fm objects, or the flat records written by
the analysis step). They are converted to ``UnifiedTrack`` right at the
boundary, merged by ``dedup_key`` and ranked by how many members share them.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable

from parties.exceptions import MemberProfileParseError

logger = logging.getLogger(__name__)

UNKNOWN_ARTIST = "Unknown"

TOP_TRACKS_LIMIT = 30
PLAYLIST_LIMIT = 20


# =========================================================
# CANONICAL SHAPE
# =========================================================

@dataclass
class UnifiedTrack:
    name: str
    artist: str
    album: str | None = None
    sources: list = field(default_factory=list)
    match_score: int = 1
    spotify_id: str | None = None
    lastfm_id: str | None = None
    apple_id: str | None = None

    @property
    def key(self) -> str:
        return dedup_key(self.name, self.artist)

    def add_source(self, user_id) -> None:
        # match_score == len(sources) must hold after every call
        self.sources.append(user_id)
        self.match_score += 1

    def fill_missing_ids(self, other: "UnifiedTrack") -> None:
        self.spotify_id = self.spotify_id or other.spotify_id
        self.lastfm_id = self.lastfm_id or other.lastfm_id
        self.apple_id = self.apple_id or other.apple_id
        self.album = self.album or other.album

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "artist": self.artist,
            "album": self.album,
            "sources": list(self.sources),
            "match_score": self.match_score,
            "spotify_id": self.spotify_id,
            "lastfm_id": self.lastfm_id,
            "apple_id": self.apple_id,
        }


def dedup_key(name: str, artist: str) -> str:
    """
    lowercase(name) + "-" + lowercase(artist).

    No punctuation, diacritics or whitespace folding: "The Beatles" and
    "Beatles" stay different tracks.
    """
    return f"{name.lower()}-{artist.lower()}"


# =========================================================
# RAW TRACK VARIANTS
# =========================================================

def _clean_id(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _clean_name(value) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def extract_artist(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for field_name in ("name", "#text"):
            if isinstance(value.get(field_name), str) and value[field_name]:
                return value[field_name]
    return UNKNOWN_ARTIST


def extract_album(value) -> str | None:
    if isinstance(value, dict):
        value = value.get("name")
    if isinstance(value, str):
        return value or None
    return None


@dataclass(frozen=True)
class SpotifyRawTrack:
    name: str | None
    artists: tuple
    album: object = None
    spotify_id: str | None = None
    lastfm_id: str | None = None
    apple_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "SpotifyRawTrack":
        return cls(
            name=_clean_name(raw.get("name")),
            artists=tuple(raw.get("artists") or ()),
            album=raw.get("album"),
            spotify_id=_clean_id(raw.get("spotifyId") or raw.get("id")),
            lastfm_id=_clean_id(raw.get("lastfmId")),
            apple_id=_clean_id(raw.get("appleId")),
        )

    @property
    def artist_name(self) -> str:
        if not self.artists:
            return UNKNOWN_ARTIST
        return extract_artist(self.artists[0])

    def to_unified(self, user_id) -> UnifiedTrack:
        return UnifiedTrack(
            name=self.name,
            artist=self.artist_name,
            album=extract_album(self.album),
            sources=[user_id],
            match_score=1,
            spotify_id=self.spotify_id,
            lastfm_id=self.lastfm_id,
            apple_id=self.apple_id,
        )


@dataclass(frozen=True)
class LastFmRawTrack:
    name: str | None
    artist: object
    album: object = None
    mbid: str | None = None
    playcount: int | None = None
    # set when the record was already merged with other services
    spotify_id: str | None = None
    apple_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "LastFmRawTrack":
        try:
            playcount = int(raw.get("playcount"))
        except (TypeError, ValueError):
            playcount = None

        return cls(
            name=_clean_name(raw.get("name")),
            artist=raw.get("artist"),
            album=raw.get("album"),
            mbid=_clean_id(raw.get("lastfmId") or raw.get("mbid")),
            playcount=playcount,
            spotify_id=_clean_id(raw.get("spotifyId")),
            apple_id=_clean_id(raw.get("appleId")),
        )

    def to_unified(self, user_id) -> UnifiedTrack:
        return UnifiedTrack(
            name=self.name,
            artist=extract_artist(self.artist),
            album=extract_album(self.album),
            sources=[user_id],
            match_score=1,
            spotify_id=self.spotify_id,
            lastfm_id=self.mbid,
            apple_id=self.apple_id,
        )


@dataclass(frozen=True)
class StoredRawTrack:
    """Flat record as written by the music analysis step."""

    name: str | None
    artist: object
    album: object = None
    spotify_id: str | None = None
    lastfm_id: str | None = None
    apple_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "StoredRawTrack":
        return cls(
            name=_clean_name(raw.get("name")),
            artist=raw.get("artist"),
            album=raw.get("album"),
            spotify_id=_clean_id(raw.get("spotifyId")),
            lastfm_id=_clean_id(raw.get("lastfmId")),
            apple_id=_clean_id(raw.get("appleId")),
        )

    def to_unified(self, user_id) -> UnifiedTrack:
        return UnifiedTrack(
            name=self.name,
            artist=extract_artist(self.artist),
            album=extract_album(self.album),
            sources=[user_id],
            match_score=1,
            spotify_id=self.spotify_id,
            lastfm_id=self.lastfm_id,
            apple_id=self.apple_id,
        )


RawTrack = SpotifyRawTrack | LastFmRawTrack | StoredRawTrack


def parse_raw_track(raw: dict) -> RawTrack:
    if "artist" not in raw and isinstance(raw.get("artists"), list):
        return SpotifyRawTrack.from_dict(raw)
    if isinstance(raw.get("artist"), dict) or "mbid" in raw or "playcount" in raw:
        return LastFmRawTrack.from_dict(raw)
    return StoredRawTrack.from_dict(raw)


def normalize_track(raw, user_id) -> UnifiedTrack | None:
    """
    Convert one raw track into a single-source UnifiedTrack seed.
    Returns None for records without a usable name.
    """
    if not isinstance(raw, dict):
        logger.debug(f"Skipping non-object track for user {user_id}: {raw!r}")
        return None

    parsed = parse_raw_track(raw)
    if parsed.name is None:
        logger.debug(f"Skipping nameless track for user {user_id}")
        return None

    return parsed.to_unified(user_id)


# =========================================================
# AGGREGATION
# =========================================================

def parse_member_profile(user_id, raw_profile) -> list:
    """
    Decode a member's stored unified_top_tracks.
    Raises MemberProfileParseError for malformed JSON or a non-list payload.
    """
    if isinstance(raw_profile, (bytes, bytearray)):
        raw_profile = raw_profile.decode("utf-8", errors="replace")

    if isinstance(raw_profile, str):
        try:
            data = json.loads(raw_profile)
        except json.JSONDecodeError as e:
            raise MemberProfileParseError(user_id, str(e)) from e
    else:
        data = raw_profile

    if not isinstance(data, list):
        raise MemberProfileParseError(
            user_id, f"expected a list of tracks, got {type(data).__name__}"
        )
    return data


class TrackAggregator:
    """Folds members' track lists into one dedup_key -> UnifiedTrack map."""

    def __init__(self):
        self.tracks: dict[str, UnifiedTrack] = {}
        self.members_analyzed = 0
        self.skipped_members = []

    def __len__(self):
        return len(self.tracks)

    def add_track(self, raw, user_id) -> UnifiedTrack | None:
        seed = normalize_track(raw, user_id)
        if seed is None:
            return None

        key = seed.key
        existing = self.tracks.get(key)
        if existing is None:
            self.tracks[key] = seed
            return seed

        existing.add_source(user_id)
        existing.fill_missing_ids(seed)
        return existing

    def add_member(self, user_id, raw_tracks: Iterable) -> int:
        added = 0
        for raw in raw_tracks:
            try:
                track = self.add_track(raw, user_id)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable track for user {user_id}: {e}")
                continue
            if track is not None:
                added += 1
        self.members_analyzed += 1
        return added

    def add_profile(self, user_id, raw_profile) -> bool:
        """
        Parse and fold one member's stored profile.
        Members without a profile or with an unreadable one are skipped.
        """
        if raw_profile is None or (isinstance(raw_profile, str) and not raw_profile.strip()):
            logger.info(f"User {user_id} has no music profile, skipping")
            self.skipped_members.append(user_id)
            return False

        try:
            raw_tracks = parse_member_profile(user_id, raw_profile)
        except MemberProfileParseError as e:
            logger.warning(f"{e}, skipping member")
            self.skipped_members.append(user_id)
            return False

        added = self.add_member(user_id, raw_tracks)
        logger.debug(f"User {user_id} contributed {added} tracks")
        return True

    def results(self) -> list[UnifiedTrack]:
        return list(self.tracks.values())


def aggregate_profiles(profiles: Iterable) -> TrackAggregator:
    """profiles = [(user_id, raw_unified_top_tracks), ...]"""
    aggregator = TrackAggregator()
    for user_id, raw_profile in profiles:
        aggregator.add_profile(user_id, raw_profile)
    return aggregator


# =========================================================
# RANKING
# =========================================================

def rank_tracks(tracks: Iterable[UnifiedTrack], limit: int | None = TOP_TRACKS_LIMIT) -> list[UnifiedTrack]:
    """
    Highest match_score first. sorted() is stable, so ties keep
    discovery order and identical inputs give identical output.
    """
    ranked = sorted(tracks, key=lambda t: t.match_score, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
