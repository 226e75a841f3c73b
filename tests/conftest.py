import itertools
from decimal import Decimal

import pytest
from flask import g
from flask.testing import FlaskClient

from mittimobil import create_app
from mittimobil.extensions import bcrypt, db
from mittimobil.models import Booking, Equipment, Farmer
from mittimobil.models.equipment import BOOKED
from mittimobil.services import AuthService


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["UPLOAD_DIR"] = str(tmp_path / "uploads")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


class ApiClient(FlaskClient):
    def open(self, *args, **kwargs):
        # Requests reuse the fixture app context, so g would keep the last caller.
        g.pop("_login_user", None)
        return super().open(*args, **kwargs)


@pytest.fixture
def client(app):
    app.test_client_class = ApiClient
    return app.test_client()


@pytest.fixture
def make_farmer(app):
    counter = itertools.count(1)
    password_hash = bcrypt.generate_password_hash("secret123").decode("utf-8")

    def _make(name=None, **overrides):
        n = next(counter)
        values = {
            "name": name or f"Farmer {n}",
            "phone": f"98{n:08d}",
            "password_hash": password_hash,
            "village": "Rampur",
            "panchayat": "Rampur Gram Panchayat",
            "district": "Pune",
            "state": "Maharashtra",
        }
        values.update(overrides)
        farmer = Farmer(**values)
        db.session.add(farmer)
        db.session.commit()
        return farmer

    return _make


@pytest.fixture
def make_equipment(app):
    def _make(owner, **overrides):
        values = {
            "owner_id": owner.id,
            "name": "Mahindra 575 DI",
            "category": "tractor",
            "price_per_hour": Decimal("100.00"),
            "longitude": 73.8567,
            "latitude": 18.5204,
            "village": owner.village,
            "panchayat": owner.panchayat,
            "district": owner.district,
        }
        values.update(overrides)
        equipment = Equipment(**values)
        db.session.add(equipment)
        db.session.commit()
        return equipment

    return _make


@pytest.fixture
def owner(make_farmer):
    return make_farmer("Suresh Patil", is_equipment_owner=True)


@pytest.fixture
def renter(make_farmer):
    return make_farmer("Ramesh Jadhav")


@pytest.fixture
def stranger(make_farmer):
    return make_farmer("Outsider")


@pytest.fixture
def equipment(owner, make_equipment):
    return make_equipment(owner)


@pytest.fixture
def auth_headers(app):
    def _headers(farmer):
        return {"Authorization": f"Bearer {AuthService.issue_token(farmer)}"}

    return _headers


@pytest.fixture
def check_invariant(app):
    """Every equipment row: current booking set iff booked, and it points at an open booking."""

    def _check():
        for item in Equipment.query.all():
            assert (item.current_booking_id is not None) == (item.availability_status == BOOKED), item.id
            if item.current_booking_id is not None:
                held = db.session.get(Booking, item.current_booking_id)
                assert held is not None
                assert held.equipment_id == item.id
                assert not held.is_terminal

    return _check
