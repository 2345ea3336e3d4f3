"""班车票务 MCP 服务"""

__version__ = "1.0.0"
