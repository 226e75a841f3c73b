from mittimobil.services.analytics_service import AnalyticsService
from mittimobil.services.auth_service import AuthService
from mittimobil.services.booking_service import BookingService
from mittimobil.services.data_migration_service import DataMigrationService
from mittimobil.services.discovery_service import DiscoveryService
from mittimobil.services.equipment_service import EquipmentService
from mittimobil.services.farmer_service import FarmerService
from mittimobil.services.file_service import FileService
from mittimobil.services.geocoding_service import GeocodingService

__all__ = [
    "AnalyticsService",
    "AuthService",
    "BookingService",
    "DataMigrationService",
    "DiscoveryService",
    "EquipmentService",
    "FarmerService",
    "FileService",
    "GeocodingService",
]
