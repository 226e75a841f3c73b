from mittimobil.extensions import db
from mittimobil.models.base import utcnow


class DataMigration(db.Model):
    __tablename__ = "data_migrations"

    name = db.Column(db.String(64), primary_key=True)
    applied_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    rows_affected = db.Column(db.Integer, nullable=False, default=0)
