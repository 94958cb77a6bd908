import json

from djoser.serializers import UserCreateSerializer
from rest_framework import serializers
from django.contrib.auth import get_user_model
from .models import MusicProfile

User = get_user_model()

class CustomRegisterSerializer(UserCreateSerializer):
    password1 = serializers.CharField(write_only=True)
    password2 = serializers.CharField(write_only=True)

    class Meta(UserCreateSerializer.Meta):
        model = User
        fields = ("id", "email", "display_name", "password1", "password2")

    def validate(self, attrs):
        if attrs["password1"] != attrs["password2"]:
            raise serializers.ValidationError({"password2": "Passwords do not match."})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop("password1")
        validated_data.pop("password2", None)
        user = User.objects.create(**validated_data)
        user.set_password(password)
        user.save()
        return user

class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "email", "display_name")
        read_only_fields = ("id", "email")

class MusicProfileSerializer(serializers.ModelSerializer):
    unified_top_tracks = serializers.SerializerMethodField()

    class Meta:
        model = MusicProfile
        fields = ["unified_top_tracks", "sources", "last_analyzed"]

    def get_unified_top_tracks(self, obj):
        if not obj.unified_top_tracks:
            return []
        try:
            return json.loads(obj.unified_top_tracks)
        except json.JSONDecodeError:
            return None

class ProfileTrackSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=500)
    artist = serializers.JSONField(required=False)
    artists = serializers.ListField(child=serializers.JSONField(), required=False)
    album = serializers.JSONField(required=False, allow_null=True)
    spotifyId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    lastfmId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    appleId = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_artist(self, value):
        # plain name or a Last.fm style {"name": ...} / {"#text": ...} object
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and any(isinstance(value.get(k), str) for k in ("name", "#text")):
            return value
        raise serializers.ValidationError("artist must be a name or an object with a text name.")

class MusicProfileUpdateSerializer(serializers.Serializer):
    unified_top_tracks = serializers.ListField(
        child=serializers.DictField(),
        allow_empty=True,
        max_length=500,
    )
    sources = serializers.ListField(child=serializers.CharField(max_length=32), required=False)

    def validate_unified_top_tracks(self, value):
        for track in value:
            ProfileTrackSerializer(data=track).is_valid(raise_exception=True)
        # keep unknown keys, services add their own (popularity, playcount...)
        return value

class LastFmConnectSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=255, trim_whitespace=True)
