import logging

from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from core.permissions import IsAgent
from core.uploads import DOCUMENT_CONTENT_TYPES, validate_upload

from .models import AgentProfile, User
from .serializers import (
    AgentProfileSerializer,
    EmailTokenObtainPairSerializer,
    PasswordChangeSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetRequestSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    UserSerializer,
)
from .services.emails import send_password_reset_email

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """Create a new student or agent account and issue an initial JWT pair."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered %s account %s", user.role, user.pk)
        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "user": UserSerializer(user, context={"request": request}).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(TokenObtainPairView):
    """Authenticate an existing user via email + password."""

    serializer_class = EmailTokenObtainPairSerializer


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(UserSerializer(request.user, context={"request": request}).data)

    def patch(self, request, *args, **kwargs):
        serializer = ProfileUpdateSerializer(
            instance=request.user, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(UserSerializer(user, context={"request": request}).data)


class ChangePasswordView(APIView):
    """Allow the current user to rotate their password after verifying the old one."""

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PasswordChangeSerializer(
            data=request.data, context={"request": request}
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(status=status.HTTP_204_NO_CONTENT)


class PasswordResetRequestView(APIView):
    """Email a single-use reset link. The reply is the same whether or not the account exists."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = PasswordResetRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = User.objects.filter(email__iexact=serializer.validated_data["email"], is_active=True).first()
        if user is not None:
            try:
                send_password_reset_email(user=user)
            except Exception:
                logger.exception("Could not send password reset email to user %s", user.pk)
            else:
                logger.info("Password reset link sent to user %s", user.pk)
        return Response(
            {"detail": "If an account exists for that email, a reset link has been sent."},
            status=status.HTTP_200_OK,
        )


class PasswordResetConfirmView(APIView):
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = PasswordResetConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Password reset completed for user %s", user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AgentIdentityDocumentView(APIView):
    """Upload the identity document an admin reviews before verifying an agent."""

    permission_classes = [IsAuthenticated, IsAgent]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, *args, **kwargs):
        upload = validate_upload(
            request.FILES.get("document"),
            field="document",
            allowed_content_types=DOCUMENT_CONTENT_TYPES,
        )
        profile, _ = AgentProfile.objects.get_or_create(user=request.user)
        if profile.identity_document:
            profile.identity_document.delete(save=False)

        profile.identity_document = upload
        profile.identity_verified = False
        profile.save(update_fields=["identity_document", "identity_verified", "updated_at"])
        logger.info("Agent %s uploaded an identity document", request.user.pk)

        serializer = AgentProfileSerializer(profile, context={"request": request})
        return Response(serializer.data, status=status.HTTP_200_OK)
