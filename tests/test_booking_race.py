import threading

import pytest

from mittimobil import create_app
from mittimobil.config import TestingConfig, config_by_env
from mittimobil.errors import EquipmentUnavailable
from mittimobil.extensions import db
from mittimobil.models import Booking, Equipment
from mittimobil.models.equipment import BOOKED
from mittimobil.services import BookingService

START = "2026-11-02T09:00:00Z"
END = "2026-11-02T12:00:00Z"


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Shared on-disk database, so each thread gets its own connection."""

    class FileBackedConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'mittimobil.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 15}}

    monkeypatch.setitem(config_by_env, "testing-file", FileBackedConfig)
    app = create_app("testing-file")
    app.config["UPLOAD_DIR"] = str(tmp_path / "uploads")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def race(app, renter_ids, equipment_id):
    barrier = threading.Barrier(len(renter_ids))
    booked, refused, errors = [], [], []

    def attempt(renter_id):
        with app.app_context():
            barrier.wait()
            try:
                booking = BookingService.create_booking(renter_id, equipment_id, START, END)
                booked.append((renter_id, booking.id))
            except EquipmentUnavailable:
                refused.append(renter_id)
            except Exception as exc:
                errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=attempt, args=(renter_id,)) for renter_id in renter_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return booked, refused, errors


@pytest.mark.parametrize("rivals", [2, 4])
def test_concurrent_requests_claim_equipment_once(app, owner, make_farmer, equipment, check_invariant, rivals):
    renter_ids = [make_farmer(f"Renter {n}").id for n in range(rivals)]
    equipment_id = equipment.id

    booked, refused, errors = race(app, renter_ids, equipment_id)

    assert errors == []
    assert len(booked) == 1
    assert sorted(refused + [booked[0][0]]) == sorted(renter_ids)

    db.session.expire_all()
    winner_id, booking_id = booked[0]
    assert Booking.query.count() == 1
    assert db.session.get(Booking, booking_id).renter_id == winner_id
    held = db.session.get(Equipment, equipment_id)
    assert held.availability_status == BOOKED
    assert held.current_booking_id == booking_id
    check_invariant()
