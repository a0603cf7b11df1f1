from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("property", "tenant", "agent", "move_in_date", "amount", "status", "payment_status")
    list_filter = ("status", "payment_status", "gender")
    search_fields = ("property__title", "tenant__email", "agent__email")
    raw_id_fields = ("property", "tenant", "agent")
