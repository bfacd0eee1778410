from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FuelStation",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("station_code", models.CharField(max_length=32, unique=True)),
                ("brand", models.CharField(blank=True, default="", max_length=255)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("municipality", models.CharField(blank=True, default="", max_length=100)),
                ("province", models.CharField(blank=True, default="", max_length=100)),
                ("latitude", models.FloatField()),
                ("longitude", models.FloatField()),
                ("opening_hours", models.CharField(blank=True, default="", max_length=255)),
                (
                    "price_gasoline_95",
                    models.DecimalField(decimal_places=3, default=0, max_digits=6),
                ),
                (
                    "price_gasoline_98",
                    models.DecimalField(decimal_places=3, default=0, max_digits=6),
                ),
                ("price_diesel", models.DecimalField(decimal_places=3, default=0, max_digits=6)),
                (
                    "price_diesel_premium",
                    models.DecimalField(decimal_places=3, default=0, max_digits=6),
                ),
                ("price_lpg", models.DecimalField(decimal_places=3, default=0, max_digits=6)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("province", "municipality", "brand"),
                "indexes": [
                    models.Index(fields=["province"], name="refuel_plan_provinc_3b1f0e_idx"),
                    models.Index(
                        fields=["latitude", "longitude"], name="refuel_plan_latitud_8c2d41_idx"
                    ),
                ],
            },
        ),
    ]
