import json
from datetime import timedelta

from django.contrib.auth.models import BaseUserManager
from django.contrib.auth.models import AbstractBaseUser
from django.contrib.auth.models import PermissionsMixin
from django.db import models
from django.core.validators import validate_email
from django.core.exceptions import ValidationError
from django.utils import timezone


class MyUserManager(BaseUserManager):
    """
    A custom user manager to deal with emails as unique identifiers for auth
    instead of usernames. The default that's used is "UserManager"
    """

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        if not password:
            raise ValueError('The password must be set')
        try:
            validate_email(email)
        except ValidationError:
            raise ValueError('Invalid email address')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_active", True)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')
        return self._create_user(email, password, **extra_fields)

class User(AbstractBaseUser, PermissionsMixin):
    email = models.EmailField(max_length=255, unique=True)
    display_name = models.CharField(max_length=255, blank=True, default="")
    is_staff = models.BooleanField(
        default=False)
    is_active = models.BooleanField(
        default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD = 'email'
    objects = MyUserManager()

    def __str__(self):
        return self.display_name or self.email

class SpotifyAccount(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="spotify_account")
    spotify_id = models.CharField(max_length=255, unique=True)
    access_token = models.CharField(max_length=512)
    refresh_token = models.CharField(max_length=512)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()

    def update_tokens(self, access_token, refresh_token=None, expires_in=3600):
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        self.expires_at = timezone.now() + timedelta(seconds=expires_in)
        self.save(update_fields=["access_token", "refresh_token", "expires_at"])

    def __str__(self):
        return self.user.email

class LastFmAccount(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="lastfm_account")
    username = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user.email} · {self.username}"

class MusicProfile(models.Model):
    """
    Output of the "analyze music" step. The playlist generator only reads it.

    unified_top_tracks is kept as raw JSON text: rows written by older
    clients are not guaranteed to parse.
    """

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="music_profile")
    unified_top_tracks = models.TextField(null=True, blank=True)
    sources = models.JSONField(default=list, blank=True)
    last_analyzed = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def set_unified_top_tracks(self, tracks: list, sources=None):
        self.unified_top_tracks = json.dumps(tracks)
        if sources is not None:
            self.sources = list(sources)
        self.last_analyzed = timezone.now()

    def __str__(self):
        return f"MusicProfile(user={self.user_id}, sources={self.sources})"
