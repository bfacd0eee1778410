from __future__ import annotations

from django.db import models


class FuelStation(models.Model):
    objects = models.Manager["FuelStation"]()

    # Fields from the ministry price listing
    station_code = models.CharField(max_length=32, unique=True)
    brand = models.CharField(max_length=255, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    municipality = models.CharField(max_length=100, blank=True, default="")
    province = models.CharField(max_length=100, blank=True, default="")
    latitude = models.FloatField()
    longitude = models.FloatField()
    opening_hours = models.CharField(max_length=255, blank=True, default="")

    # Prices per liter, 0 when the fuel is not sold
    price_gasoline_95 = models.DecimalField(max_digits=6, decimal_places=3, default=0)
    price_gasoline_98 = models.DecimalField(max_digits=6, decimal_places=3, default=0)
    price_diesel = models.DecimalField(max_digits=6, decimal_places=3, default=0)
    price_diesel_premium = models.DecimalField(max_digits=6, decimal_places=3, default=0)
    price_lpg = models.DecimalField(max_digits=6, decimal_places=3, default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("province", "municipality", "brand")
        indexes = (
            models.Index(fields=["province"], name="refuel_plan_provinc_3b1f0e_idx"),
            models.Index(fields=["latitude", "longitude"], name="refuel_plan_latitud_8c2d41_idx"),
        )

    def __str__(self) -> str:
        return f"{self.brand} ({self.municipality}, {self.province})"
