import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Party",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=12, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("max_members", models.PositiveIntegerField(default=50)),
                ("voting_enabled", models.BooleanField(default=True)),
                ("playlist_generated", models.BooleanField(default=False)),
                ("total_members", models.PositiveIntegerField(default=0)),
                ("total_tracks", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="created_parties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "verbose_name_plural": "parties",
            },
        ),
        migrations.CreateModel(
            name="GeneratedTrack",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=500)),
                ("artist", models.CharField(max_length=500)),
                ("album", models.CharField(blank=True, max_length=500, null=True)),
                ("sources", models.JSONField(default=list)),
                ("match_score", models.PositiveIntegerField(help_text="Number of party members that have this track")),
                ("vote_count", models.IntegerField(default=0)),
                ("spotify_id", models.CharField(blank=True, max_length=255, null=True)),
                ("lastfm_id", models.CharField(blank=True, max_length=255, null=True)),
                ("apple_id", models.CharField(blank=True, max_length=255, null=True)),
                ("position", models.PositiveIntegerField(help_text="Rank within its generation run (0 = best)")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="generated_tracks",
                        to="parties.party",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
                "indexes": [
                    models.Index(fields=["party", "-vote_count"], name="gen_track_party_votes_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PartyMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("HOST", "Host"), ("MEMBER", "Member")],
                        default="MEMBER",
                        max_length=10,
                    ),
                ),
                ("joined_at", models.DateTimeField(auto_now_add=True)),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="members",
                        to="parties.party",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="party_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["joined_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("party", "user"), name="unique_party_member"),
                ],
            },
        ),
    ]
