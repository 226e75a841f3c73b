import pytest
from sqlalchemy import text

from mittimobil.extensions import db
from mittimobil.models import DataMigration, Equipment
from mittimobil.services import BookingService, DataMigrationService
from mittimobil.services.data_migration_service import backfill_locations, find_coordinates, repair_availability


def book(renter, equipment):
    return BookingService.create_booking(renter.id, equipment.id, "2026-11-02T09:00:00Z", "2026-11-02T11:00:00Z")


def force(equipment_id, **values):
    """Write a row the way older releases could leave it, skipping CHECK constraints."""
    db.session.execute(text("PRAGMA ignore_check_constraints = ON"))
    Equipment.query.filter_by(id=equipment_id).update(values, synchronize_session=False)
    db.session.commit()
    db.session.execute(text("PRAGMA ignore_check_constraints = OFF"))


def test_repairs_equipment_held_by_closed_booking(owner, renter, equipment, check_invariant):
    booking = book(renter, equipment)
    # Booking closed by a release that never freed the equipment.
    booking.status = "completed"
    db.session.commit()

    assert repair_availability() == 1
    db.session.commit()

    refreshed = db.session.get(Equipment, equipment.id)
    assert refreshed.availability_status == "available"
    assert refreshed.current_booking_id is None
    check_invariant()


def test_repairs_equipment_held_by_missing_booking(owner, equipment, check_invariant):
    force(equipment.id, availability_status="booked", current_booking_id=4040)

    assert repair_availability() == 1
    db.session.commit()

    assert db.session.get(Equipment, equipment.id).availability_status == "available"
    check_invariant()


def test_repairs_inconsistent_references(owner, make_equipment, check_invariant):
    booked_without_ref = make_equipment(owner)
    available_with_ref = make_equipment(owner)
    force(booked_without_ref.id, availability_status="booked")
    force(available_with_ref.id, current_booking_id=77)

    assert repair_availability() == 2
    db.session.commit()

    check_invariant()


def test_repair_leaves_healthy_bookings_alone(renter, equipment, check_invariant):
    booking = book(renter, equipment)

    assert repair_availability() == 0
    assert db.session.get(Equipment, equipment.id).current_booking_id == booking.id
    check_invariant()


@pytest.mark.parametrize(
    "district, village, expected",
    [
        ("Navi Mumbai", "Vashi", (73.0297, 19.0330)),
        ("Thane", "", (72.9781, 19.2183)),
        ("", "SRM Nagar", (80.0498, 12.8230)),
        ("Atlantis", "Nowhere", None),
        ("", "", None),
    ],
)
def test_find_coordinates(district, village, expected):
    assert find_coordinates(district, village) == expected


def test_backfill_moves_placeholder_locations(owner, make_equipment):
    at_origin = make_equipment(owner, longitude=0.0, latitude=0.0, district="Thane")
    at_default = make_equipment(owner, longitude=72.8777, latitude=19.0760, district="Pune")
    already_mumbai = make_equipment(owner, longitude=72.8777, latitude=19.0760, district="Mumbai")
    unknown = make_equipment(owner, longitude=0.0, latitude=0.0, district="Atlantis", village="Nowhere")
    placed = make_equipment(owner, longitude=74.5, latitude=18.1, district="Thane")

    assert backfill_locations() == 2
    db.session.commit()

    def where(item):
        row = db.session.get(Equipment, item.id)
        return row.longitude, row.latitude

    assert where(at_origin) == (72.9781, 19.2183)
    assert where(at_default) == (73.8567, 18.5204)
    assert where(already_mumbai) == (72.8777, 19.0760)
    assert where(unknown) == (0.0, 0.0)
    assert where(placed) == (74.5, 18.1)


def test_run_applies_each_migration_once(renter, equipment):
    booking = book(renter, equipment)
    booking.status = "cancelled"
    db.session.commit()

    assert DataMigrationService.run() == [("0001_repair_availability", 1), ("0002_backfill_locations", 0)]
    assert {row.name: row.rows_affected for row in DataMigration.query.all()} == {
        "0001_repair_availability": 1,
        "0002_backfill_locations": 0,
    }
    assert DataMigrationService.pending() == []
    assert DataMigrationService.run() == []


def test_dry_run_applies_nothing(renter, equipment):
    booking = book(renter, equipment)
    booking.status = "cancelled"
    db.session.commit()

    assert DataMigrationService.run(dry_run=True) == [
        ("0001_repair_availability", None),
        ("0002_backfill_locations", None),
    ]
    assert DataMigration.query.count() == 0
    assert db.session.get(Equipment, equipment.id).availability_status == "booked"


def test_cli(app):
    runner = app.test_cli_runner()

    dry = runner.invoke(args=["data-migrate", "--dry-run"])
    assert dry.exit_code == 0
    assert "pending  0001_repair_availability" in dry.output

    applied = runner.invoke(args=["data-migrate"])
    assert applied.exit_code == 0
    assert "applied  0001_repair_availability (0 rows)" in applied.output
    assert "applied  0002_backfill_locations (0 rows)" in applied.output

    again = runner.invoke(args=["data-migrate"])
    assert again.output.strip() == "No pending data migrations."
