"""数据模型包"""

from .route import Route, RouteSearchResult
from .query import SearchCriteria
from .seat import Seat, SeatSelection
from .booking import Booking
from .offer import Offer

__all__ = [
    "Route",
    "RouteSearchResult",
    "SearchCriteria",
    "Seat",
    "SeatSelection",
    "Booking",
    "Offer",
]
