"""
Services package - Business logic layer
"""
from skateguide.services.geo_service import geo_service
from skateguide.services.rating_service import rating_service
from skateguide.services.favorites_service import favorites_service
from skateguide.services.filter_service import filter_service
from skateguide.services.authorization_service import authorization_service
from skateguide.services.security_service import security_service
from skateguide.services.activity_service import activity_service
from skateguide.services.skatepark_service import skatepark_service
from skateguide.services.user_service import user_service

__all__ = [
    "geo_service",
    "rating_service",
    "favorites_service",
    "filter_service",
    "authorization_service",
    "security_service",
    "activity_service",
    "skatepark_service",
    "user_service"
]
