from mittimobil.models.booking import Booking
from mittimobil.models.data_migration import DataMigration
from mittimobil.models.equipment import Equipment
from mittimobil.models.farmer import Farmer

__all__ = [
    "Farmer",
    "Equipment",
    "Booking",
    "DataMigration",
]
