"""HTTP客户端服务"""

import logging
from typing import Optional, Dict, Any
import httpx
from mcp_bus_booking.utils.config import get_settings

logger = logging.getLogger(__name__)


class HttpClient:
    """远程线路目录 HTTP 客户端"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = get_settings()
        self.session: Optional[httpx.AsyncClient] = None
        # 测试时可注入 MockTransport
        self.transport = transport

    async def __aenter__(self):
        await self.create_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_session()

    async def create_session(self):
        """创建HTTP会话"""
        headers = {
            'User-Agent': self.settings.user_agent,
            'Accept': 'application/json',
            'Cache-Control': 'no-cache',
        }

        self.session = httpx.AsyncClient(
            headers=headers,
            timeout=self.settings.request_timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    async def close_session(self):
        """关闭HTTP会话"""
        if self.session:
            await self.session.aclose()
            self.session = None

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """GET请求"""
        if not self.session:
            await self.create_session()
        assert self.session is not None  # 类型保证
        try:
            logger.info(f"发送GET请求: {url}")
            response = await self.session.get(url, params=params)
            logger.info(f"响应状态: {response.status_code}")
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"请求错误: {e}")
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP状态错误: {e}")
            raise

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET请求并解析JSON"""
        response = await self.get(url, params=params)
        return response.json()
