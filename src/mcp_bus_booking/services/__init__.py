"""服务层包"""

from .route_service import RouteService
from .booking_service import BookingService, BookingError
from .offer_service import OfferService
from .http_client import HttpClient
from .catalog_filter import filter_catalog
from .seat_service import generate_seat_map, toggle_seat, SeatUnavailableError

__all__ = [
    "RouteService",
    "BookingService",
    "BookingError",
    "OfferService",
    "HttpClient",
    "filter_catalog",
    "generate_seat_map",
    "toggle_seat",
    "SeatUnavailableError",
]
