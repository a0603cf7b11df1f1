from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.db import transaction
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from notifications.models import Notification
from notifications.services import create_notification

from .models import AgentProfile, StudentProfile

User = get_user_model()


class StudentProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentProfile
        fields = ["university", "year_of_study"]


class AgentProfileSerializer(serializers.ModelSerializer):
    identity_document_url = serializers.SerializerMethodField()

    class Meta:
        model = AgentProfile
        fields = ["agency_name", "identity_document_url", "identity_verified", "total_revenue"]
        read_only_fields = ["identity_document_url", "identity_verified", "total_revenue"]

    def get_identity_document_url(self, obj) -> str | None:
        if not obj.identity_document:
            return None
        request = self.context.get("request")
        url = obj.identity_document.url
        if request is not None:
            return request.build_absolute_uri(url)
        return url


class UserSerializer(serializers.ModelSerializer):
    """Expose the public fields for the custom user model."""

    profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "phone_number",
            "role",
            "is_verified",
            "profile",
        ]
        read_only_fields = fields

    def get_profile(self, obj) -> dict | None:
        if obj.is_student and hasattr(obj, "student_profile"):
            return StudentProfileSerializer(obj.student_profile).data
        if obj.is_agent and hasattr(obj, "agent_profile"):
            return AgentProfileSerializer(obj.agent_profile, context=self.context).data
        return None


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "full_name", "email", "phone_number"]
        read_only_fields = fields


def _validate_unique_phone(value, *, exclude_pk=None):
    if not value:
        return None
    queryset = User.objects.filter(phone_number=value)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise serializers.ValidationError("A user with this phone number already exists.")
    return value


class RegisterSerializer(serializers.ModelSerializer):
    """Validate and create a student or agent account along with its profile."""

    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=[User.STUDENT, User.AGENT], default=User.STUDENT)
    university = serializers.CharField(required=False, allow_blank=True, max_length=200)
    year_of_study = serializers.ChoiceField(choices=StudentProfile.YEARS, required=False, allow_blank=True)
    agency_name = serializers.CharField(required=False, allow_blank=True, max_length=200)

    class Meta:
        model = User
        fields = [
            "email",
            "password",
            "full_name",
            "phone_number",
            "role",
            "university",
            "year_of_study",
            "agency_name",
        ]
        extra_kwargs = {"phone_number": {"validators": []}}

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate_phone_number(self, value):
        return _validate_unique_phone(value)

    @transaction.atomic
    def create(self, validated_data):
        university = validated_data.pop("university", "")
        year_of_study = validated_data.pop("year_of_study", "")
        agency_name = validated_data.pop("agency_name", "")
        email = validated_data.pop("email").lower()
        user = User.objects.create_user(
            username=email,
            email=email,
            password=validated_data.pop("password"),
            **validated_data,
        )
        if user.is_agent:
            AgentProfile.objects.create(user=user, agency_name=agency_name)
        else:
            StudentProfile.objects.create(user=user, university=university, year_of_study=year_of_study)
        return user


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Allow SimpleJWT to accept an email field for authentication."""

    username_field = User.USERNAME_FIELD

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["email"] = serializers.EmailField(required=False)
        self.fields[self.username_field].required = False

    def validate(self, attrs):
        email = attrs.get("email")
        if email and not attrs.get("username"):
            attrs["username"] = email.lower()
        attrs.pop("email", None)
        if not attrs.get("username"):
            raise serializers.ValidationError({"email": "This field is required."})
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Update the caller's account fields plus whichever profile matches their role."""

    university = serializers.CharField(required=False, allow_blank=True, max_length=200)
    year_of_study = serializers.ChoiceField(choices=StudentProfile.YEARS, required=False, allow_blank=True)
    agency_name = serializers.CharField(required=False, allow_blank=True, max_length=200)

    class Meta:
        model = User
        fields = ["email", "full_name", "phone_number", "university", "year_of_study", "agency_name"]
        extra_kwargs = {"phone_number": {"validators": []}}

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if (
            User.objects.filter(email__iexact=email)
            .exclude(pk=self.instance.pk)
            .exists()
        ):
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate_phone_number(self, value):
        return _validate_unique_phone(value, exclude_pk=self.instance.pk)

    @transaction.atomic
    def update(self, instance, validated_data):
        student_fields = {
            key: validated_data.pop(key) for key in ("university", "year_of_study") if key in validated_data
        }
        agent_fields = {key: validated_data.pop(key) for key in ("agency_name",) if key in validated_data}

        email = validated_data.get("email")
        if email:
            validated_data["username"] = email
        user = super().update(instance, validated_data)

        if user.is_student and student_fields:
            user.student_profile, _ = StudentProfile.objects.update_or_create(user=user, defaults=student_fields)
        if user.is_agent and agent_fields:
            user.agent_profile, _ = AgentProfile.objects.update_or_create(user=user, defaults=agent_fields)

        create_notification(
            user=user,
            type=Notification.ACCOUNT_UPDATED,
            title="Account Updated",
            message="Your account details were updated.",
            related_object_id=user.id,
            metadata={"fields": sorted({*validated_data, *student_fields, *agent_fields} - {"username"})},
        )
        return user


class PasswordChangeSerializer(serializers.Serializer):
    """Validate and update the authenticated user's password."""

    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        user = self.context["request"].user
        if not user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate(self, attrs):
        user = self.context["request"].user
        if user.check_password(attrs["new_password"]):
            raise serializers.ValidationError(
                {"new_password": "New password must differ from the current password."}
            )
        return attrs

    def save(self, **kwargs):
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        return user


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()

    def validate_email(self, value: str) -> str:
        return value.lower()


class PasswordResetConfirmSerializer(serializers.Serializer):
    """Check a uid/token pair from a reset email and set the new password."""

    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate(self, attrs):
        try:
            pk = force_str(urlsafe_base64_decode(attrs["uid"]))
            user = User.objects.get(pk=pk)
        except (TypeError, ValueError, OverflowError, User.DoesNotExist):
            user = None
        if user is None or not default_token_generator.check_token(user, attrs["token"]):
            raise serializers.ValidationError({"token": "This reset link is invalid or has expired."})
        attrs["user"] = user
        return attrs

    @transaction.atomic
    def save(self, **kwargs):
        user = self.validated_data["user"]
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        create_notification(
            user=user,
            type=Notification.PASSWORD_RESET,
            title="Password Reset",
            message="Your password was reset. If this wasn't you, contact support immediately.",
            related_object_id=user.id,
        )
        return user
