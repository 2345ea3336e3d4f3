"""优惠活动服务"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from ..models.offer import Offer
from ..utils.resources import read_json, resource_path

logger = logging.getLogger(__name__)


class OfferService:
    def __init__(self):
        self.offers: List[Offer] = []
        self.loaded = False

    async def load_offers(self, path: Union[str, Path, None] = None):
        path = path or resource_path("offers.json")
        data = await read_json(path)
        if data is None:
            return
        offers = []
        for item in data:
            try:
                offers.append(Offer.model_validate(item))
            except ValidationError as e:
                logger.warning(f"解析优惠数据失败，跳过: {item!r}: {e.error_count()}个错误")
        self.offers = offers
        self.loaded = True
        logger.info(f"已加载{len(self.offers)}个优惠活动")

    async def ensure_loaded(self):
        if not self.loaded:
            await self.load_offers()

    def list_offers(self, active_only: bool = False) -> List[Offer]:
        if active_only:
            return [o for o in self.offers if o.is_active]
        return list(self.offers)

    def get_offer_by_code(self, code: str) -> Optional[Offer]:
        code = code.strip().upper()
        for offer in self.offers:
            if offer.code.upper() == code:
                return offer
        return None
