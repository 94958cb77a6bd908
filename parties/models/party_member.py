from django.contrib.auth import get_user_model
from django.db import models
from .party import Party

User = get_user_model()


class PartyMember(models.Model):
    class Role(models.TextChoices):
        HOST = "HOST", "Host"
        MEMBER = "MEMBER", "Member"

    party = models.ForeignKey(
        Party,
        on_delete=models.CASCADE,
        related_name="members",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="party_memberships",
    )

    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.MEMBER,
    )

    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["party", "user"],
                name="unique_party_member",
            )
        ]

    def __str__(self):
        return f"PartyMember(party={self.party_id}, user={self.user_id}, role={self.role})"
