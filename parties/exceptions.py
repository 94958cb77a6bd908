class PartyError(Exception):
    """Caller-facing failure with a stable machine readable code."""

    code = "party_error"
    message = "Party request failed"

    def __init__(self, message=None):
        self.message = message or self.message
        super().__init__(self.message)


class PartyNotFound(PartyError):
    code = "party_not_found"
    message = "Party not found"


class PartyInactive(PartyError):
    code = "party_inactive"
    message = "Party is not active"


class PartyFull(PartyError):
    code = "party_full"
    message = "Party is full"


class NotPartyMember(PartyError):
    code = "not_a_member"
    message = "Not a member of this party"


class NotPartyCreator(PartyError):
    code = "not_party_creator"
    message = "Only the party creator can do this"


class PartyCodeExhausted(PartyError):
    code = "party_code_exhausted"
    message = "Could not allocate a unique party code"


class PlaylistGenerationError(PartyError):
    code = "playlist_generation_failed"
    message = "Failed to generate playlist"


class NoMusicData(PlaylistGenerationError):
    code = "no_music_data"
    message = (
        "No music data found for party members. "
        "Ask members to analyze their music first."
    )


class PlaylistGenerationInProgress(PlaylistGenerationError):
    code = "generation_in_progress"
    message = "A playlist is already being generated for this party"


class PlaylistInternalError(PlaylistGenerationError):
    code = "internal_error"


class MemberProfileParseError(Exception):
    """A member's stored unified_top_tracks could not be read. Never leaves the aggregator."""

    def __init__(self, user_id, reason):
        super().__init__(f"Unreadable music profile for user {user_id}: {reason}")
        self.user_id = user_id
        self.reason = reason
