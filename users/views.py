from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework import permissions, status
import logging

from .models import LastFmAccount, MusicProfile
from .serializers import LastFmConnectSerializer, MusicProfileSerializer, MusicProfileUpdateSerializer
from .services import has_connected_service
from .tasks import analyze_music_profile

logger = logging.getLogger(__name__)


class MusicProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        profile = MusicProfile.objects.filter(user=request.user).first()
        if profile is None:
            return Response(
                {"error": "no_music_profile", "message": "Analyze your music first"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(MusicProfileSerializer(profile).data)

    def put(self, request):
        serializer = MusicProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        profile, created = MusicProfile.objects.get_or_create(user=request.user)
        profile.set_unified_top_tracks(
            serializer.validated_data["unified_top_tracks"],
            sources=serializer.validated_data.get("sources", profile.sources),
        )
        profile.save()

        logger.info(
            f"Music profile {'created' if created else 'replaced'} for user {request.user.id}"
        )
        return Response(
            MusicProfileSerializer(profile).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class AnalyzeMusicView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        if not has_connected_service(request.user):
            return Response(
                {
                    "error": "no_music_services",
                    "message": "No music services connected. Please connect at least one service first.",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        analyze_music_profile.delay(request.user.id)
        return Response({"status": "queued"}, status=status.HTTP_202_ACCEPTED)


class LastFmConnect(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = LastFmConnectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        account, created = LastFmAccount.objects.update_or_create(
            user=request.user,
            defaults={"username": serializer.validated_data["username"]},
        )

        return Response(
            {
                "detail": "Last.fm account connected successfully.",
                "username": account.username,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
