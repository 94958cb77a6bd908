from .party import Party, normalize_party_code
from .party_member import PartyMember
from .generated_track import GeneratedTrack
