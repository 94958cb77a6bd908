import pytest

from parties.models import Party, PartyMember


@pytest.fixture
def make_party(db):
    def _make_party(creator, members=(), code="ABC234", **extra):
        party = Party.objects.create(
            code=code,
            name="Friday night",
            creator=creator,
            total_members=1 + len(members),
            **extra,
        )
        PartyMember.objects.create(party=party, user=creator, role=PartyMember.Role.HOST)
        for member in members:
            PartyMember.objects.create(party=party, user=member)
        return party

    return _make_party
