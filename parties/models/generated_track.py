from django.db import models
from .party import Party


class GeneratedTrackManager(models.Manager):
    def for_party(self, party):
        return self.filter(party=party).order_by("-vote_count", "position", "id")


class GeneratedTrack(models.Model):
    """
    One row of a party playlist produced by a generation run.
    """

    party = models.ForeignKey(
        Party,
        on_delete=models.CASCADE,
        related_name="generated_tracks",
    )

    name = models.CharField(max_length=500)
    artist = models.CharField(max_length=500)
    album = models.CharField(max_length=500, null=True, blank=True)

    # user ids of the members whose profile holds this track
    sources = models.JSONField(default=list)

    match_score = models.PositiveIntegerField(
        help_text="Number of party members that have this track",
    )

    vote_count = models.IntegerField(default=0)

    spotify_id = models.CharField(max_length=255, null=True, blank=True)
    lastfm_id = models.CharField(max_length=255, null=True, blank=True)
    apple_id = models.CharField(max_length=255, null=True, blank=True)

    position = models.PositiveIntegerField(
        help_text="Rank within its generation run (0 = best)",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    objects = GeneratedTrackManager()

    class Meta:
        ordering = ["position", "id"]
        indexes = [
            models.Index(
                fields=["party", "-vote_count"],
                name="gen_track_party_votes_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"GeneratedTrack({self.name} - {self.artist}, score={self.match_score})"
