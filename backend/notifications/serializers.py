from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "read",
            "related_object_id",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
