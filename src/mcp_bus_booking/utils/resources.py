"""内置数据文件读写"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import aiofiles

logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


def resource_path(name: str) -> Path:
    return RESOURCES_DIR / name


async def read_json(path: Union[str, Path]) -> Optional[Any]:
    """异步读取JSON文件，文件不存在或内容非法时返回None"""
    if not os.path.exists(path):
        logger.error(f"数据文件不存在: {path}")
        return None
    async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
        content = await f.read()
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"数据文件解析失败: {path}: {e}")
        return None


async def write_json(path: Union[str, Path], data: Any):
    """异步写入JSON文件"""
    async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
        await f.write(json.dumps(data, ensure_ascii=False, indent=2))
