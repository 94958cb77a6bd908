from rest_framework import serializers
from parties.models import Party, PartyMember, GeneratedTrack


class GeneratedTrackSerializer(serializers.ModelSerializer):
    class Meta:
        model = GeneratedTrack
        fields = [
            "id",
            "name",
            "artist",
            "album",
            "sources",
            "match_score",
            "vote_count",
            "spotify_id",
            "lastfm_id",
            "apple_id",
            "position",
            "created_at",
        ]


class PartyMemberSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source="user.id")
    display_name = serializers.SerializerMethodField()
    has_music_profile = serializers.SerializerMethodField()

    class Meta:
        model = PartyMember
        fields = [
            "user_id",
            "display_name",
            "role",
            "joined_at",
            "has_music_profile",
        ]

    def get_display_name(self, obj):
        return obj.user.display_name or obj.user.email.split("@")[0]

    def get_has_music_profile(self, obj):
        profile = getattr(obj.user, "music_profile", None)
        return bool(profile and profile.unified_top_tracks)


class PartySerializer(serializers.ModelSerializer):
    creator_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Party
        fields = [
            "id",
            "code",
            "name",
            "description",
            "creator_id",
            "is_active",
            "max_members",
            "voting_enabled",
            "playlist_generated",
            "total_members",
            "total_tracks",
            "created_at",
        ]


class PartyDetailSerializer(PartySerializer):
    members = PartyMemberSerializer(many=True)
    tracks = serializers.SerializerMethodField()

    class Meta(PartySerializer.Meta):
        fields = PartySerializer.Meta.fields + ["members", "tracks"]

    def get_tracks(self, obj):
        return GeneratedTrackSerializer(
            GeneratedTrack.objects.for_party(obj), many=True
        ).data


class PartyCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, trim_whitespace=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class PartyJoinSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=12, trim_whitespace=True)
