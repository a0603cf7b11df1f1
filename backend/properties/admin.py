from django.contrib import admin

from .models import Property, PropertyImage


class PropertyImageInline(admin.TabularInline):
    model = PropertyImage
    extra = 0


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "location", "room_type", "price", "agent", "is_available")
    list_filter = ("room_type", "is_available")
    search_fields = ("title", "location", "agent__email")
    inlines = [PropertyImageInline]


@admin.register(PropertyImage)
class PropertyImageAdmin(admin.ModelAdmin):
    list_display = ("property", "image", "created_at")
    raw_id_fields = ("property",)
