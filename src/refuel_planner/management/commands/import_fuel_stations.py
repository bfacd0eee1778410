from __future__ import annotations

from pathlib import Path
from typing import Any

import polars as pl
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from refuel_planner.models import FuelStation

PRICE_COLUMNS = {
    "Precio Gasolina 95 E5": "price_gasoline_95",
    "Precio Gasolina 98 E5": "price_gasoline_98",
    "Precio Gasoleo A": "price_diesel",
    "Precio Gasoleo Premium": "price_diesel_premium",
    "Precio Gases licuados del petróleo": "price_lpg",
}

UPDATE_FIELDS = [
    "brand",
    "address",
    "municipality",
    "province",
    "latitude",
    "longitude",
    "opening_hours",
    *PRICE_COLUMNS.values(),
]


def _decimal_comma(column: str) -> pl.Expr:
    # The ministry listing writes decimals as "1,459".
    return (
        pl.col(column)
        .cast(pl.Utf8, strict=False)
        .str.strip_chars()
        .str.replace(",", ".", literal=True)
        .cast(pl.Float64, strict=False)
    )


def _text(column: str) -> pl.Expr:
    return pl.col(column).cast(pl.Utf8, strict=False).str.strip_chars().fill_null("")


class Command(BaseCommand):
    help = "Import fuel stations and prices from the ministry CSV using Polars."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--csv-path",
            type=str,
            default=str(settings.PROJECT_ROOT / "estaciones-terrestres.csv"),
            help="Path to the source stations CSV",
        )
        parser.add_argument(
            "--replace",
            action="store_true",
            help="Delete existing stations before importing",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        csv_path = Path(options["csv_path"])
        if not csv_path.exists():
            raise CommandError(f"CSV file does not exist: {csv_path}")

        frame = self._load_and_transform(csv_path)
        records = frame.to_dicts()

        if options["replace"]:
            FuelStation.objects.all().delete()

        existing = {
            station.station_code: station
            for station in FuelStation.objects.filter(
                station_code__in=[row["station_code"] for row in records]
            )
        }

        to_create: list[FuelStation] = []
        to_update: list[FuelStation] = []

        for row in records:
            station = existing.get(row["station_code"])
            if station is None:
                to_create.append(FuelStation(**row))
                continue

            for field_name in UPDATE_FIELDS:
                setattr(station, field_name, row[field_name])
            to_update.append(station)

        if to_create:
            FuelStation.objects.bulk_create(to_create, batch_size=1000)
        if to_update:
            FuelStation.objects.bulk_update(to_update, UPDATE_FIELDS, batch_size=1000)

        self.stdout.write(
            self.style.SUCCESS(
                "Imported fuel stations: "
                + (
                    f"{len(records)} rows normalized, "
                    f"{len(to_create)} created, {len(to_update)} updated"
                )
            )
        )

    @staticmethod
    def _load_and_transform(csv_path: Path) -> pl.DataFrame:
        frame = pl.read_csv(csv_path, infer_schema_length=0, encoding="utf8-lossy")
        required_columns = {
            "IDEESS",
            "Rótulo",
            "Dirección",
            "Municipio",
            "Provincia",
            "Latitud",
            "Longitud (WGS84)",
            "Horario",
            *PRICE_COLUMNS,
        }
        missing_columns = required_columns.difference(frame.columns)
        if missing_columns:
            raise CommandError(f"Missing expected columns: {sorted(missing_columns)}")

        normalized = (
            frame.select(
                _text("IDEESS").alias("station_code"),
                _text("Rótulo").alias("brand"),
                _text("Dirección").alias("address"),
                _text("Municipio").alias("municipality"),
                _text("Provincia").alias("province"),
                _decimal_comma("Latitud").alias("latitude"),
                _decimal_comma("Longitud (WGS84)").alias("longitude"),
                _text("Horario").alias("opening_hours"),
                *[
                    _decimal_comma(source).fill_null(0.0).alias(target)
                    for source, target in PRICE_COLUMNS.items()
                ],
            )
            .with_columns(
                # Negative or malformed prices mean "not sold".
                *[
                    pl.when(pl.col(target) > 0).then(pl.col(target)).otherwise(0.0).alias(target)
                    for target in PRICE_COLUMNS.values()
                ]
            )
            .filter(
                (pl.col("station_code").str.len_chars() > 0)
                & pl.col("latitude").is_not_null()
                & pl.col("longitude").is_not_null()
                & pl.col("latitude").is_between(-90.0, 90.0)
                & pl.col("longitude").is_between(-180.0, 180.0)
                & ~((pl.col("latitude") == 0) & (pl.col("longitude") == 0))
            )
            .unique(subset=["station_code"], keep="last", maintain_order=True)
        )

        return normalized
