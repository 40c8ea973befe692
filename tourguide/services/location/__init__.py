from tourguide.services.location.location_service import LocationService

__all__ = ["LocationService"]
