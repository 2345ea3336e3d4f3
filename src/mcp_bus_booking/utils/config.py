"""配置管理"""

import logging
from typing import Optional
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """应用配置"""
    server_host: str = Field(default="0.0.0.0", description="服务器主机地址")
    server_port: int = Field(default=8000, description="服务器端口")
    debug: bool = Field(default=False, description="调试模式")
    user_agent: str = Field(
        default="mcp-bus-booking/1.0 (+https://github.com/)",
        description="用户代理字符串"
    )
    request_timeout: int = Field(default=30, description="请求超时时间（秒）")
    log_level: str = Field(default="INFO", description="日志级别")
    catalog_url: Optional[str] = Field(default=None, description="远程线路目录地址，为空时使用本地数据")
    default_seat_price: float = Field(default=45.0, ge=0, description="默认座位价格")
    available_seats_threshold: int = Field(default=5, ge=0, description="“余座充足”筛选的阈值")
    timezone: str = Field(default="America/New_York", description="默认时区")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """获取配置实例"""
    global _settings
    if _settings is None:
        env_file_path = Path(".env")
        if not env_file_path.exists():
            logger.warning(f"环境配置文件 {env_file_path.absolute()} 不存在，使用默认配置")
        else:
            logger.info(f"加载环境配置文件: {env_file_path.absolute()}")

        try:
            _settings = Settings()
            logger.info(f"配置加载成功 - 主机: {_settings.server_host}, 端口: {_settings.server_port}, 目录: {_settings.catalog_url or '本地'}, 日志级别: {_settings.log_level}")
        except Exception as e:
            logger.error(f"配置加载失败: {e}，使用默认配置")
            _settings = Settings.model_validate({})

    return _settings
