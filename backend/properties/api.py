import logging

from django.db.models import ProtectedError
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from core.exceptions import Conflict
from core.pagination import PageLimitPagination
from core.permissions import IsAgentOrAdmin
from core.uploads import IMAGE_CONTENT_TYPES, validate_upload
from properties.filters import PropertyFilter
from properties.models import Property, PropertyImage
from properties.serializers import PropertyImageSerializer, PropertySerializer

logger = logging.getLogger(__name__)


class PropertyViewSet(viewsets.ModelViewSet):
    """Listings are public to read; agents manage their own, admins manage any."""

    serializer_class = PropertySerializer
    pagination_class = PageLimitPagination
    filterset_class = PropertyFilter
    search_fields = ["title", "location", "description"]
    ordering_fields = ["price", "created_at", "rating"]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return Property.objects.select_related("agent").prefetch_related("images").order_by("-created_at", "id")

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsAgentOrAdmin()]

    def _ensure_can_manage(self, property_obj: Property):
        user = self.request.user
        if user.is_admin:
            return
        if property_obj.agent_id != user.id:
            raise PermissionDenied("You can only manage your own properties.")

    def perform_create(self, serializer):
        if not self.request.user.is_agent:
            raise PermissionDenied("Only agents can list properties.")
        property_obj = serializer.save(agent=self.request.user)
        logger.info("Property %s listed by agent %s", property_obj.id, self.request.user.pk)

    def perform_update(self, serializer):
        self._ensure_can_manage(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._ensure_can_manage(instance)
        try:
            instance.delete()
        except ProtectedError:
            raise Conflict("Properties with bookings cannot be deleted; mark them unavailable instead.")

    @action(
        detail=True,
        methods=["post"],
        url_path="images",
        parser_classes=[MultiPartParser, FormParser],
    )
    def upload_image(self, request, pk=None):
        property_obj = self.get_object()
        self._ensure_can_manage(property_obj)

        upload = validate_upload(
            request.FILES.get("image"),
            field="image",
            allowed_content_types=IMAGE_CONTENT_TYPES,
        )
        image = PropertyImage.objects.create(property=property_obj, image=upload)
        serializer = PropertyImageSerializer(image, context={"request": request})
        return Response(serializer.data, status=status.HTTP_201_CREATED)
