import logging

from celery import shared_task
from django.conf import settings

from utils.locks import ResourceLock, ResourceLockedException
from .models import User
from .services import build_music_profile

logger = logging.getLogger(__name__)


@shared_task
def analyze_music_profile(user_id: int):
    """
    Rebuild the user's unified top tracks from Spotify / Last.fm.
    """
    timeout = getattr(settings, "TOOTFM", {}).get("ANALYSIS_LOCK_TIMEOUT", 900)

    try:
        with ResourceLock("music-analysis", user_id, timeout=timeout):
            try:
                user = User.objects.get(id=user_id)
            except User.DoesNotExist:
                logger.error(f"User {user_id} not found, skipping music analysis")
                return None

            profile = build_music_profile(user)
            return {"user_id": user_id, "sources": profile.sources}

    except ResourceLockedException:
        logger.info(f"User {user_id} music analysis already in progress, skipping")
        return None
