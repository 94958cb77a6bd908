import logging

from django.db.models import Prefetch
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from parties.exceptions import (
    NoMusicData,
    NotPartyCreator,
    NotPartyMember,
    PartyCodeExhausted,
    PartyError,
    PartyFull,
    PartyInactive,
    PartyNotFound,
    PlaylistGenerationInProgress,
)
from parties.models import GeneratedTrack, Party, PartyMember
from parties.serializers import (
    GeneratedTrackSerializer,
    PartyCreateSerializer,
    PartyDetailSerializer,
    PartyJoinSerializer,
    PartySerializer,
)
from parties.services.parties import create_party, delete_party, get_party, join_party, leave_party
from parties.services.playlist import generate_playlist
from parties.tasks import generate_party_playlist_task

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    PartyNotFound: status.HTTP_404_NOT_FOUND,
    NoMusicData: status.HTTP_400_BAD_REQUEST,
    PartyInactive: status.HTTP_400_BAD_REQUEST,
    PartyFull: status.HTTP_400_BAD_REQUEST,
    NotPartyMember: status.HTTP_403_FORBIDDEN,
    NotPartyCreator: status.HTTP_403_FORBIDDEN,
    PlaylistGenerationInProgress: status.HTTP_409_CONFLICT,
    PartyCodeExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: PartyError, http_status=None) -> Response:
    if http_status is None:
        http_status = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(
        {"error": exc.code, "message": exc.message},
        status=http_status,
    )


class PartyCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PartyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            party = create_party(
                creator=request.user,
                name=serializer.validated_data["name"],
                description=serializer.validated_data.get("description", ""),
            )
        except PartyError as e:
            return error_response(e)

        return Response(
            {"success": True, "party": PartySerializer(party).data},
            status=status.HTTP_201_CREATED,
        )


class PartyJoinView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PartyJoinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            party, joined = join_party(request.user, serializer.validated_data["code"])
        except PartyError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "joined": joined,
                "party": PartySerializer(party).data,
            },
            status=status.HTTP_200_OK,
        )


class PartyDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, code):
        try:
            party = get_party(code)
        except PartyError as e:
            return error_response(e)

        if not party.is_member(request.user):
            return error_response(NotPartyMember())

        party = (
            Party.objects
            .prefetch_related(
                Prefetch(
                    "members",
                    queryset=PartyMember.objects.select_related("user__music_profile"),
                )
            )
            .get(id=party.id)
        )
        return Response(PartyDetailSerializer(party).data)

    def delete(self, request, code):
        try:
            delete_party(request.user, code)
        except PartyError as e:
            return error_response(e)

        return Response(
            {"success": True, "message": "Party deleted successfully"},
            status=status.HTTP_200_OK,
        )


class PartyLeaveView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, code):
        try:
            party = leave_party(request.user, code)
        except NotPartyMember as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except PartyError as e:
            return error_response(e)

        return Response({"success": True, "party": PartySerializer(party).data})


class GeneratePlaylistView(APIView):
    """
    POST /api/party/<code>/generate-playlist/

    ?async=true hands the run to Celery and answers 202 straight away.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, code):
        run_async = request.query_params.get("async", "").lower() == "true"

        try:
            party = get_party(code)
        except PartyError as e:
            return error_response(e)

        if not party.is_member(request.user):
            return error_response(NotPartyMember())

        if run_async:
            generate_party_playlist_task.delay(party.code)
            return Response(
                {"success": True, "status": "queued", "code": party.code},
                status=status.HTTP_202_ACCEPTED,
            )

        try:
            result = generate_playlist(party.code)
        except PartyError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "playlist": GeneratedTrackSerializer(result["playlist"], many=True).data,
                "stats": result["stats"],
            },
            status=status.HTTP_200_OK,
        )


class PartyTracksView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, code):
        try:
            party = get_party(code)
        except PartyError as e:
            return error_response(e)

        if not party.is_member(request.user):
            return error_response(NotPartyMember())

        tracks = GeneratedTrack.objects.for_party(party)
        return Response(
            {
                "success": True,
                "tracks": GeneratedTrackSerializer(tracks, many=True).data,
            }
        )


class MyPartiesView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        parties = Party.objects.for_user(request.user)
        return Response(
            {
                "success": True,
                "parties": PartySerializer(parties, many=True).data,
            }
        )
