"""
依赖注入模块

提供 FastAPI 依赖项。
"""

from ..service import LoadMonitor, get_monitor


def get_load_monitor() -> LoadMonitor:
    """获取核心服务实例"""
    return get_monitor()
