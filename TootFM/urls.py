"""
URL configuration for the tootFM project.
"""
from django.conf import settings
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from users.views import MusicProfileView, AnalyzeMusicView, LastFmConnect
from parties.views import (
    PartyCreateView,
    PartyJoinView,
    PartyDetailView,
    PartyLeaveView,
    GeneratePlaylistView,
    PartyTracksView,
    MyPartiesView,
)

urlpatterns = [
    path("", include("django_prometheus.urls")),
    path('admin/', admin.site.urls),
    path("auth/", include("djoser.urls")),
    path("auth/", include("djoser.urls.jwt")),
    path("auth/social/", include("allauth.socialaccount.urls")),
    path("api/profile/music/", MusicProfileView.as_view()),
    path("api/music/analyze/", AnalyzeMusicView.as_view()),
    path("api/music/lastfm/connect/", LastFmConnect.as_view()),
    path("api/party/create/", PartyCreateView.as_view()),
    path("api/party/join/", PartyJoinView.as_view()),
    path("api/parties/my/", MyPartiesView.as_view()),
    path("api/party/<str:code>/", PartyDetailView.as_view()),
    path("api/party/<str:code>/leave/", PartyLeaveView.as_view()),
    path("api/party/<str:code>/generate-playlist/", GeneratePlaylistView.as_view()),
    path("api/party/<str:code>/tracks/", PartyTracksView.as_view()),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

if settings.DEBUG_TOOLBAR:
    from debug_toolbar.toolbar import debug_toolbar_urls

    urlpatterns += debug_toolbar_urls()
