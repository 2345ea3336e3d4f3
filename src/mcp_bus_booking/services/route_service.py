"""线路目录服务"""

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import httpx
from pydantic import ValidationError

from ..models.query import SearchCriteria
from ..models.route import Route, RouteSearchResult
from ..models.seat import Seat
from ..utils.config import get_settings
from ..utils.resources import read_json, resource_path
from .catalog_filter import filter_catalog
from .http_client import HttpClient
from .seat_service import generate_seat_map

logger = logging.getLogger(__name__)


class RouteService:
    """线路目录服务

    持有一份线路快照。数据来自内置 routes.json，或配置了 catalog_url 时来自远程目录。
    过滤、座位图生成都在快照上同步完成。
    """

    def __init__(self, http_client: Optional[HttpClient] = None):
        self.settings = get_settings()
        self.http_client = http_client or HttpClient()
        self.routes: List[Route] = []
        self.loaded = False

    async def load_routes(self, path: Union[str, Path, None] = None):
        """从本地JSON加载线路"""
        path = path or resource_path("routes.json")
        data = await read_json(path)
        if data is None:
            return
        routes = self._parse_routes(data)
        if routes is None:
            logger.error(f"本地线路数据不可用: {path}")
            return
        self.routes = routes
        self.loaded = True
        logger.info(f"已加载{len(self.routes)}条线路: {path}")

    async def fetch_remote_routes(self, url: Optional[str] = None) -> bool:
        """从远程目录拉取线路；失败时保留当前快照"""
        url = url or self.settings.catalog_url
        if not url:
            logger.warning("未配置远程目录地址")
            return False
        try:
            async with self.http_client:
                data = await self.http_client.get_json(url)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"拉取远程线路失败: {e}")
            return False

        routes = self._parse_routes(data)
        if routes is None:
            logger.error(f"远程线路数据不可用，保留当前快照: {url}")
            return False
        self.routes = routes
        self.loaded = True
        logger.info(f"已从远程目录加载{len(self.routes)}条线路")
        return True

    async def ensure_loaded(self):
        if self.loaded:
            return
        if self.settings.catalog_url and await self.fetch_remote_routes():
            return
        await self.load_routes()

    def _parse_routes(self, data: Any) -> Optional[List[Route]]:
        """解析线路数据，跳过非法记录

        格式错误或没有任何合法记录时返回None。
        """
        if isinstance(data, dict):
            if "routes" not in data:
                logger.error(f"线路数据缺少 routes 字段: {sorted(data)}")
                return None
            data = data["routes"]
        if not isinstance(data, list):
            logger.error(f"线路数据格式错误: {type(data).__name__}")
            return None

        routes = []
        for item in data:
            try:
                routes.append(Route.model_validate(item))
            except ValidationError as e:
                logger.warning(f"解析线路数据失败，跳过: {item!r}: {e.error_count()}个错误")
                continue
        if not routes:
            logger.error(f"线路数据中没有合法记录（共{len(data)}条）")
            return None
        return routes

    async def get_route_by_id(self, route_id: str) -> Optional[Route]:
        await self.ensure_loaded()
        for route in self.routes:
            if route.id == route_id:
                return route
        return None

    async def search_routes(self, criteria: SearchCriteria) -> RouteSearchResult:
        """查询线路"""
        await self.ensure_loaded()
        # 传入快照副本，调用方拿到的列表与服务内部状态互不影响
        routes = filter_catalog(
            list(self.routes), criteria,
            available_threshold=self.settings.available_seats_threshold,
        )
        return RouteSearchResult(routes=routes, criteria=criteria, total=len(routes))

    async def get_seat_map(self, route_id: str,
                           extra_occupied: Iterable[str] = ()) -> Optional[List[Seat]]:
        """生成线路座位图；extra_occupied 为订单已占用的座位"""
        route = await self.get_route_by_id(route_id)
        if route is None:
            logger.warning(f"线路不存在: {route_id}")
            return None
        occupied = set(route.occupied_seats) | set(extra_occupied)
        return generate_seat_map(route.total_seats, occupied, price=route.price)
