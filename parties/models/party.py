from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


def normalize_party_code(code: str) -> str:
    return (code or "").strip().upper()


class PartyManager(models.Manager):
    def by_code(self, code):
        return self.filter(code=normalize_party_code(code))

    def for_user(self, user):
        return self.filter(members__user=user).distinct()


class Party(models.Model):
    """
    A group session. Members' music profiles are merged into
    the party's generated playlist.
    """

    code = models.CharField(max_length=12, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    creator = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="created_parties",
    )

    is_active = models.BooleanField(default=True)
    max_members = models.PositiveIntegerField(default=50)
    voting_enabled = models.BooleanField(default=True)

    # summary counters, written by playlist generation / join / leave
    playlist_generated = models.BooleanField(default=False)
    total_members = models.PositiveIntegerField(default=0)
    total_tracks = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PartyManager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "parties"

    @property
    def is_full(self) -> bool:
        return self.members.count() >= self.max_members

    def is_member(self, user) -> bool:
        return self.members.filter(user=user).exists()

    def save(self, *args, **kwargs):
        self.code = normalize_party_code(self.code)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.code} · {self.name}"
