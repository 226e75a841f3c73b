"""Versioned, idempotent data repairs.

Each migration runs at most once per database, is recorded in
``data_migrations`` and only touches rows that still need fixing, so a rerun
after a partial failure is safe. Run them with ``flask data-migrate``.
"""

from flask import current_app
from sqlalchemy import and_, or_

from mittimobil.extensions import db
from mittimobil.models import Booking, DataMigration, Equipment
from mittimobil.models.booking import OPEN_STATUSES
from mittimobil.models.equipment import AVAILABLE, BOOKED

# (longitude, latitude)
KNOWN_PLACES = {
    "navi mumbai": (73.0297, 19.0330),
    "srm nagar": (80.0498, 12.8230),
    "chengalpattu": (79.9753, 12.6919),
    "thane": (72.9781, 19.2183),
    "kalyan": (73.1631, 19.2403),
    "pune": (73.8567, 18.5204),
    "mumbai": (72.8777, 19.0760),
    "panvel": (73.1129, 18.9894),
    "raigad": (73.0068, 18.8350),
    "medak": (78.0322, 17.7134),
    "rampur": (73.8567, 18.5204),
}


def find_coordinates(district, village):
    text = f"{district or ''} {village or ''}".strip().lower()
    if not text:
        return None
    for place, coordinates in KNOWN_PLACES.items():
        if place in text:
            return coordinates
    return None


def repair_availability():
    """Reset equipment whose availability and current booking disagree."""
    repaired = 0
    held = (
        Equipment.query.outerjoin(Booking, Booking.id == Equipment.current_booking_id)
        .filter(
            or_(
                and_(Equipment.availability_status == BOOKED, Equipment.current_booking_id.is_(None)),
                and_(Equipment.availability_status == BOOKED, Booking.id.is_(None)),
                and_(Equipment.availability_status == BOOKED, Booking.status.notin_(OPEN_STATUSES)),
            )
        )
        .all()
    )
    for equipment in held:
        equipment.availability_status = AVAILABLE
        equipment.current_booking_id = None
        repaired += 1

    dangling = Equipment.query.filter(
        Equipment.availability_status != BOOKED,
        Equipment.current_booking_id.isnot(None),
    ).all()
    for equipment in dangling:
        equipment.current_booking_id = None
        repaired += 1
    return repaired


def backfill_locations():
    """Re-locate equipment still sitting at (0, 0) or at the fallback point."""
    config = current_app.config
    placeholders = {(0.0, 0.0), (config["DEFAULT_LONGITUDE"], config["DEFAULT_LATITUDE"])}
    moved = 0
    for equipment in Equipment.query.all():
        if (equipment.longitude, equipment.latitude) not in placeholders:
            continue
        coordinates = find_coordinates(equipment.district, equipment.village)
        if coordinates and coordinates != (equipment.longitude, equipment.latitude):
            equipment.longitude, equipment.latitude = coordinates
            moved += 1
    return moved


MIGRATIONS = (
    ("0001_repair_availability", repair_availability),
    ("0002_backfill_locations", backfill_locations),
)


class DataMigrationService:
    @staticmethod
    def pending():
        applied = {row.name for row in DataMigration.query.all()}
        return [(name, func) for name, func in MIGRATIONS if name not in applied]

    @staticmethod
    def run(dry_run=False):
        results = []
        for name, migration in DataMigrationService.pending():
            if dry_run:
                results.append((name, None))
                continue
            try:
                rows = migration()
                db.session.add(DataMigration(name=name, rows_affected=rows))
                db.session.commit()
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Data migration %s failed", name)
                raise
            current_app.logger.info("Data migration %s applied (%s rows)", name, rows)
            results.append((name, rows))
        return results
