import logging

from celery import shared_task

from parties.exceptions import PlaylistGenerationError, PartyNotFound
from parties.services.playlist import generate_playlist

logger = logging.getLogger(__name__)


@shared_task
def generate_party_playlist_task(party_code: str):
    try:
        result = generate_playlist(party_code)
    except PartyNotFound:
        logger.warning(f"Party {party_code} disappeared before playlist generation")
        return None
    except PlaylistGenerationError as e:
        logger.info(f"Playlist generation for party {party_code} not done: {e.code}")
        return {"success": False, "error": e.code}

    return {
        "success": True,
        "party": party_code,
        "track_ids": [track.id for track in result["playlist"]],
        "stats": result["stats"],
    }
