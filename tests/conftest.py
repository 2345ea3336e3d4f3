import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mcp_bus_booking import server
from mcp_bus_booking.models.route import Route
from mcp_bus_booking.services.booking_service import BookingService
from mcp_bus_booking.services.offer_service import OfferService
from mcp_bus_booking.services.route_service import RouteService


def make_route(**overrides) -> Route:
    data = {
        "id": "1",
        "name": "SwiftBus Express",
        "bus_type": "AC",
        "origin": "New York",
        "destination": "Philadelphia",
        "departure_time": "08:00 AM",
        "arrival_time": "10:30 AM",
        "duration": "2h 30m",
        "price": 45,
        "available_seats": 12,
        "total_seats": 40,
        "amenities": ["WiFi"],
        "rating": 4.5,
    }
    data.update(overrides)
    return Route(**data)


@pytest.fixture
def routes():
    return [
        make_route(id="1", name="SwiftBus Express", price=45, rating=4.5,
                   departure_time="08:00 AM", available_seats=12),
        make_route(id="2", name="Metro Comfort", bus_type="Non-AC", price=35, rating=4.2,
                   departure_time="09:15 AM", available_seats=8, total_seats=45),
        make_route(id="3", name="Royal Sleeper", destination="Boston", price=85, rating=4.8,
                   departure_time="11:00 PM", available_seats=6, total_seats=32),
        make_route(id="4", name="City Connect", origin="Philadelphia", destination="Washington DC",
                   price=40, rating=4.3, departure_time="02:00 PM", available_seats=15, total_seats=38),
    ]


@pytest_asyncio.fixture
async def booking_service():
    service = BookingService()
    await service.load_bookings()
    return service


@pytest_asyncio.fixture
async def async_client(monkeypatch):
    """每个测试使用全新的服务实例，避免订单状态互相影响"""
    monkeypatch.setattr(server, "route_service", RouteService())
    monkeypatch.setattr(server, "booking_service", BookingService())
    monkeypatch.setattr(server, "offer_service", OfferService())
    monkeypatch.setattr(server, "connected_clients", {})

    transport = ASGITransport(app=server.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
