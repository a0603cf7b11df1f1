from rest_framework import serializers

from properties.models import Property, PropertyImage


class PropertyImageSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = PropertyImage
        fields = ["id", "url", "created_at"]

    def get_url(self, obj) -> str | None:
        if not obj.image:
            return None
        request = self.context.get("request")
        url = obj.image.url
        if request is not None:
            return request.build_absolute_uri(url)
        return url


class PropertySerializer(serializers.ModelSerializer):
    agent = serializers.IntegerField(source="agent_id", read_only=True)
    agent_name = serializers.CharField(source="agent.full_name", read_only=True)
    images = PropertyImageSerializer(many=True, read_only=True)

    class Meta:
        model = Property
        fields = [
            "id",
            "agent",
            "agent_name",
            "title",
            "description",
            "location",
            "price",
            "room_type",
            "wifi",
            "kitchen",
            "security",
            "parking",
            "power_24_7",
            "gym",
            "is_available",
            "rating",
            "images",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "agent", "agent_name", "rating", "images", "created_at", "updated_at"]


class PropertySummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Property
        fields = ["id", "title", "location", "price"]
