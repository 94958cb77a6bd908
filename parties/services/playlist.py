import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import DatabaseError, transaction

from parties.exceptions import (
    NoMusicData,
    PartyError,
    PartyNotFound,
    PlaylistGenerationInProgress,
    PlaylistInternalError,
)
from parties.models import GeneratedTrack, Party, PartyMember, normalize_party_code
from utils.locks import ResourceLock, ResourceLockedException
from .track_unification import (
    PLAYLIST_LIMIT,
    TOP_TRACKS_LIMIT,
    UnifiedTrack,
    aggregate_profiles,
    rank_tracks,
)

logger = logging.getLogger(__name__)

REGENERATION_REPLACE = "replace"
REGENERATION_APPEND = "append"


def tootfm_setting(name, default):
    return getattr(settings, "TOOTFM", {}).get(name, default)


# =========================================================
# MEMBER PROFILES
# =========================================================

def load_member_profiles(party) -> list:
    """
    [(user_id, raw unified_top_tracks or None), ...] in membership order.
    """
    return list(
        PartyMember.objects
        .filter(party=party)
        .order_by("joined_at", "id")
        .values_list("user_id", "user__music_profile__unified_top_tracks")
    )


# =========================================================
# PERSISTENCE
# =========================================================

def persist_playlist(party, tracks: list[UnifiedTrack], limit: int = PLAYLIST_LIMIT, keep_existing: bool = False) -> list:
    """
    Write up to `limit` tracks for the party and update its counters.

    Every row gets its own savepoint: a failing insert is logged and
    skipped, the rest of the batch still goes in.
    """
    saved = []

    for position, track in enumerate(tracks[:limit]):
        try:
            with transaction.atomic():
                row = GeneratedTrack.objects.create(
                    party=party,
                    name=track.name,
                    artist=track.artist,
                    album=track.album,
                    sources=list(track.sources),
                    match_score=track.match_score,
                    spotify_id=track.spotify_id,
                    lastfm_id=track.lastfm_id,
                    apple_id=track.apple_id,
                    position=position,
                )
        except (DatabaseError, ValidationError) as e:
            logger.warning(
                f"Failed to save track {track.name!r} for party {party.code}: {e}"
            )
            continue

        saved.append(row)

    party.playlist_generated = bool(saved) or (keep_existing and party.playlist_generated)
    party.total_tracks = len(saved)
    party.save(update_fields=["playlist_generated", "total_tracks", "updated_at"])

    return saved


# =========================================================
# GENERATION
# =========================================================

def _build_playlist(party) -> dict:
    top_limit = tootfm_setting("TOP_TRACKS_LIMIT", TOP_TRACKS_LIMIT)
    playlist_limit = tootfm_setting("PLAYLIST_LIMIT", PLAYLIST_LIMIT)
    regeneration = tootfm_setting("PLAYLIST_REGENERATION", REGENERATION_REPLACE)

    if regeneration not in (REGENERATION_REPLACE, REGENERATION_APPEND):
        raise ImproperlyConfigured(
            f"TOOTFM['PLAYLIST_REGENERATION'] must be 'replace' or 'append', got {regeneration!r}"
        )

    profiles = load_member_profiles(party)
    logger.info(f"Generating playlist for party {party.code}: {len(profiles)} members")

    aggregator = aggregate_profiles(profiles)
    if not len(aggregator):
        logger.info(
            f"Party {party.code}: no usable music profiles "
            f"(skipped members: {aggregator.skipped_members})"
        )
        raise NoMusicData()

    ranked = rank_tracks(aggregator.results(), limit=top_limit)

    with transaction.atomic():
        if regeneration == REGENERATION_REPLACE:
            deleted, _ = GeneratedTrack.objects.filter(party=party).delete()
            if deleted:
                logger.info(f"Party {party.code}: replaced {deleted} previously generated tracks")

        saved = persist_playlist(
            party,
            ranked,
            limit=playlist_limit,
            keep_existing=regeneration == REGENERATION_APPEND,
        )

    stats = {
        "totalTracks": len(ranked),
        "membersAnalyzed": aggregator.members_analyzed,
        "topMatchScore": ranked[0].match_score,
    }

    logger.info(
        f"Party {party.code}: playlist generated "
        f"(saved={len(saved)}, ranked={len(ranked)}, unique={len(aggregator)}, "
        f"members_analyzed={aggregator.members_analyzed})"
    )

    return {
        "success": True,
        "playlist": saved,
        "stats": stats,
    }


def generate_playlist(party_code: str) -> dict:
    """
    Merge the party members' music profiles into the party playlist.

    Returns {"success": True, "playlist": [GeneratedTrack, ...],
    "stats": {"totalTracks", "membersAnalyzed", "topMatchScore"}}.

    Raises PartyNotFound, NoMusicData, PlaylistGenerationInProgress
    (another run holds the party lock) or PlaylistInternalError.
    """
    code = normalize_party_code(party_code)
    party = Party.objects.filter(code=code).first()
    if party is None:
        raise PartyNotFound(f"Party {code} not found")

    lock_timeout = tootfm_setting("GENERATION_LOCK_TIMEOUT", 120)

    try:
        with ResourceLock("party-playlist", party.id, timeout=lock_timeout):
            return _build_playlist(party)
    except ResourceLockedException as e:
        raise PlaylistGenerationInProgress() from e
    except PartyError:
        raise
    except Exception as e:
        logger.exception(f"Playlist generation failed for party {code}")
        raise PlaylistInternalError() from e
