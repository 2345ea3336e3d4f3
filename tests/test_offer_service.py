import pytest

from mcp_bus_booking.services.offer_service import OfferService


@pytest.mark.asyncio
async def test_list_offers():
    service = OfferService()
    await service.ensure_loaded()
    assert len(service.list_offers()) == 5
    active = service.list_offers(active_only=True)
    assert [o.code for o in active] == ["FIRST100", "WEEKEND200", "STUDENT25", "CASHBACK100"]


@pytest.mark.asyncio
async def test_get_offer_by_code_is_case_insensitive():
    service = OfferService()
    await service.load_offers()
    offer = service.get_offer_by_code(" student25 ")
    assert offer is not None
    assert offer.offer_type == "percentage"
    assert offer.max_discount == 150
    assert service.get_offer_by_code("NOPE") is None
