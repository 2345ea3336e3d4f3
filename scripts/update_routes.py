"""从远程目录刷新内置线路数据"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mcp_bus_booking.services.route_service import RouteService
from mcp_bus_booking.utils.config import get_settings
from mcp_bus_booking.utils.resources import resource_path, write_json

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def update_routes(url=None):
    settings = get_settings()
    url = url or settings.catalog_url
    if not url:
        logger.error("❌ 未配置 CATALOG_URL，无法更新")
        return False

    logger.info(f"🌐 数据源: {url}")
    service = RouteService()
    if not await service.fetch_remote_routes(url):
        logger.error("❌ 获取失败，保留本地 routes.json")
        return False

    save_path = resource_path("routes.json")
    await write_json(save_path, [route.model_dump() for route in service.routes])
    logger.info(f"✅ 共写入 {len(service.routes)} 条线路: {save_path}")
    for route in service.routes[:10]:
        logger.info(f"    - {route.name}（{route.origin} → {route.destination}，${route.price:g}）")
    return True


if __name__ == "__main__":
    ok = asyncio.run(update_routes(sys.argv[1] if len(sys.argv) > 1 else None))
    sys.exit(0 if ok else 1)
