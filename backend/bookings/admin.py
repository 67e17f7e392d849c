from django.contrib import admin
from .models import Booking

@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("reference", "customer", "status", "terms", "preferred_delivery_date", "actual_delivery_date", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("reference", "shipper", "consignee")
    date_hierarchy = "created_at"
