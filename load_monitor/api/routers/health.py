"""
健康检查 API
"""

from fastapi import APIRouter, Depends

from ...models import HealthResponse
from ...service import LoadMonitor
from ...utils import utc_now
from ..dependencies import get_load_monitor

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health(monitor: LoadMonitor = Depends(get_load_monitor)):
    """返回服务状态及当前跟踪的服务器数、样本数"""
    stats = monitor.stats()
    return HealthResponse(
        status="ok",
        timestamp=utc_now(),
        entities=stats["entities"],
        samples=stats["samples"],
    )
