"""启动服务器脚本"""

import asyncio
import sys
import logging
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def check_environment():
    """检查运行环境"""
    logger.info("检查运行环境...")

    if sys.version_info < (3, 10):
        logger.error(f"Python版本过低: {sys.version_info}，需要Python 3.10+")
        return False

    try:
        import fastapi
        import httpx
        import pydantic
        import pydantic_settings
        import aiofiles
        import pytz
        import uvicorn
        logger.info("✅ 所有必要包已安装")
        return True
    except ImportError as e:
        logger.error(f"❌ 缺少必要包: {e}")
        logger.error("请运行: uv sync")
        return False


def main():
    """主函数"""
    if not check_environment():
        sys.exit(1)

    try:
        from mcp_bus_booking.server import main_server
    except ImportError as e:
        logger.error(f"❌ 导入错误: {e}")
        logger.error("请确保已正确安装依赖: uv sync")
        sys.exit(1)

    logger.info("🚀 启动班车票务MCP服务器...")
    try:
        asyncio.run(main_server())
    except KeyboardInterrupt:
        logger.info("服务器已停止")


if __name__ == "__main__":
    main()
