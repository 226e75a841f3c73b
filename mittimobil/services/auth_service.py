import re
from decimal import Decimal, InvalidOperation

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError

from mittimobil.errors import AppError, AuthenticationError, ValidationError
from mittimobil.extensions import bcrypt, db
from mittimobil.models import Farmer
from mittimobil.models.farmer import LANGUAGES
from mittimobil.services.equipment_service import parse_location

PHONE_PATTERN = re.compile(r"[6-9]\d{9}")
TOKEN_SALT = "mittimobil-auth"
REQUIRED_PROFILE_FIELDS = ("village", "panchayat", "district", "state")


class AuthService:
    @staticmethod
    def _serializer():
        return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)

    @staticmethod
    def normalize_phone(phone):
        digits = "".join(ch for ch in str(phone or "") if ch.isdigit())
        if not PHONE_PATTERN.fullmatch(digits):
            raise ValidationError("Invalid phone number.")
        return digits

    @staticmethod
    def text_field(value, label):
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValidationError(f"{label} must be text.")
        return value.strip()

    @staticmethod
    def parse_language(value):
        language = (AuthService.text_field(value, "Language") or "hindi").lower()
        if language not in LANGUAGES:
            raise ValidationError(f"Language must be one of: {', '.join(LANGUAGES)}.")
        return language

    @staticmethod
    def parse_land_size(value):
        if value in (None, ""):
            return Decimal("0")
        try:
            size = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValidationError("Land size must be a number.") from exc
        if not size.is_finite() or size < 0:
            raise ValidationError("Land size must not be negative.")
        return size

    @staticmethod
    def issue_token(farmer):
        return AuthService._serializer().dumps({"id": farmer.id})

    @staticmethod
    def load_farmer_from_token(token):
        """Identity resolver: bearer token -> Farmer, or None."""
        if not token:
            return None
        max_age = current_app.config["AUTH_TOKEN_MAX_AGE_DAYS"] * 24 * 3600
        try:
            payload = AuthService._serializer().loads(token, max_age=max_age)
        except SignatureExpired:
            current_app.logger.info("Rejected expired auth token")
            return None
        except BadSignature:
            return None
        farmer_id = payload.get("id") if isinstance(payload, dict) else None
        if farmer_id is None:
            return None
        return db.session.get(Farmer, farmer_id)

    @staticmethod
    def register_farmer(payload):
        name = AuthService.text_field(payload.get("name"), "Name")
        if not name:
            raise ValidationError("Name is required.")
        phone = AuthService.normalize_phone(payload.get("phone"))
        password = payload.get("password") or ""
        if not isinstance(password, str) or len(password) < 6:
            raise ValidationError("Password must be at least 6 characters.")

        profile = {}
        for field in REQUIRED_PROFILE_FIELDS:
            value = AuthService.text_field(payload.get(field), field.capitalize())
            if not value:
                raise ValidationError(f"{field.capitalize()} is required.")
            profile[field] = value

        if Farmer.query.filter_by(phone=phone).first():
            raise ValidationError("Phone number already registered.")

        location = parse_location(payload) or (0.0, 0.0)
        farmer = Farmer(
            name=name,
            phone=phone,
            password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
            longitude=location[0],
            latitude=location[1],
            land_size=AuthService.parse_land_size(payload.get("land_size")),
            language=AuthService.parse_language(payload.get("language")),
            **profile,
        )
        try:
            db.session.add(farmer)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AppError("Phone number already registered.", 409) from exc
        current_app.logger.info("Farmer %s registered from %s", farmer.id, farmer.district)
        return farmer

    @staticmethod
    def authenticate(phone, password):
        try:
            phone = AuthService.normalize_phone(phone)
        except ValidationError as exc:
            raise AuthenticationError("Invalid credentials.") from exc
        farmer = Farmer.query.filter_by(phone=phone).first()
        if not farmer or not isinstance(password, str):
            raise AuthenticationError("Invalid credentials.")
        try:
            is_valid = bcrypt.check_password_hash(farmer.password_hash, password)
        except ValueError:
            is_valid = False
        if not is_valid:
            raise AuthenticationError("Invalid credentials.")
        return farmer
