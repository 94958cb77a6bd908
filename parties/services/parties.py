import logging
import secrets

from django.db import IntegrityError, transaction
from django.db.models import F

from parties.exceptions import (
    NotPartyCreator,
    NotPartyMember,
    PartyCodeExhausted,
    PartyFull,
    PartyInactive,
    PartyNotFound,
)
from parties.models import Party, PartyMember, normalize_party_code
from .playlist import tootfm_setting

logger = logging.getLogger(__name__)

# no 0/O, 1/I: codes get read out loud
PARTY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_party_code(length: int = 6) -> str:
    return "".join(secrets.choice(PARTY_CODE_ALPHABET) for _ in range(length))


def get_party(code) -> Party:
    party = Party.objects.by_code(code).first()
    if party is None:
        raise PartyNotFound(f"Party {normalize_party_code(code)} not found")
    return party


@transaction.atomic
def create_party(creator, name: str, description: str = "") -> Party:
    """
    Create a party under a fresh code. The creator joins as HOST.
    """
    length = tootfm_setting("PARTY_CODE_LENGTH", 6)
    attempts = tootfm_setting("PARTY_CODE_ATTEMPTS", 10)

    for _ in range(attempts):
        code = generate_party_code(length)
        if not Party.objects.filter(code=code).exists():
            break
    else:
        raise PartyCodeExhausted()

    party = Party.objects.create(
        code=code,
        name=name.strip(),
        description=(description or "").strip(),
        creator=creator,
        max_members=tootfm_setting("PARTY_MAX_MEMBERS", 50),
        total_members=1,
    )
    PartyMember.objects.create(
        party=party,
        user=creator,
        role=PartyMember.Role.HOST,
    )

    logger.info(f"Party created: {party.code} {party.name!r} by user {creator.id}")
    return party


def join_party(user, code) -> tuple[Party, bool]:
    """
    Returns (party, joined). Joining twice is a no-op.
    """
    party = get_party(code)

    if party.is_member(user):
        return party, False

    if not party.is_active:
        raise PartyInactive()

    if party.is_full:
        raise PartyFull()

    try:
        with transaction.atomic():
            PartyMember.objects.create(party=party, user=user, role=PartyMember.Role.MEMBER)
            Party.objects.filter(id=party.id).update(total_members=F("total_members") + 1)
    except IntegrityError:
        # concurrent join of the same user
        return party, False

    party.refresh_from_db()
    logger.info(f"User {user.id} joined party {party.code}")
    return party, True


@transaction.atomic
def leave_party(user, code) -> Party:
    party = get_party(code)

    deleted, _ = PartyMember.objects.filter(party=party, user=user).delete()
    if not deleted:
        raise NotPartyMember()

    Party.objects.filter(id=party.id, total_members__gt=0).update(
        total_members=F("total_members") - 1
    )
    party.refresh_from_db()
    logger.info(f"User {user.id} left party {party.code}")
    return party


def delete_party(user, code) -> None:
    party = get_party(code)

    if party.creator_id != user.id:
        raise NotPartyCreator("Only the party creator can delete it")

    party.delete()
    logger.info(f"Party {party.code} deleted by user {user.id}")
