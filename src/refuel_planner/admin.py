from django.contrib import admin

from refuel_planner.models import FuelStation


@admin.register(FuelStation)
class FuelStationAdmin(admin.ModelAdmin):
    list_display = (
        "brand",
        "municipality",
        "province",
        "price_gasoline_95",
        "price_diesel",
        "price_lpg",
        "opening_hours",
    )
    list_filter = ("province",)
    search_fields = ("station_code", "brand", "address", "municipality", "province")
    ordering = ("province", "municipality", "brand")
