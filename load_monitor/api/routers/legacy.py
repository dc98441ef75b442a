"""
兼容接口

保留最初版本的两个端点：
- POST /update       上报负载
- GET  /get/{name}   纯文本返回最近 1 小时 / 24 小时平均值
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ...errors import NotFoundError
from ...models import DAILY_BY_HOUR, HOURLY_BY_MINUTE, SampleIn
from ...service import LoadMonitor
from ..dependencies import get_load_monitor

router = APIRouter(tags=["legacy"])


def format_series(values: List[Optional[float]]) -> str:
    """格式化为 [1.5 2 3.25] 形式"""
    return "[" + " ".join("-" if v is None else f"{v:g}" for v in values) + "]"


@router.post("/update", response_class=PlainTextResponse)
def update(payload: SampleIn, monitor: LoadMonitor = Depends(get_load_monitor)):
    """接收一次服务器负载上报"""
    monitor.record_sample(payload.name, payload.cpu, payload.mem, payload.time)
    return ""


@router.get("/get/{name}", response_class=PlainTextResponse)
def get(name: str, monitor: LoadMonitor = Depends(get_load_monitor)):
    """返回服务器最近 1 小时（按分钟）和 24 小时（按小时）的平均值"""
    try:
        result = monitor.query_averages(name, windows=[HOURLY_BY_MINUTE, DAILY_BY_HOUR])
    except NotFoundError as e:
        # 兼容端点始终返回纯文本
        return PlainTextResponse(str(e), status_code=404)
    if result.is_empty:
        return f"No update information for server {name} found."

    last_hour, last_day = result.windows
    return (
        f"Averages over the Last Hour: Memory: {format_series(last_hour.mem)}, "
        f"CPU: {format_series(last_hour.cpu)}. "
        f"Last 24 Hours: Memory: {format_series(last_day.mem)}, "
        f"CPU: {format_series(last_day.cpu)}"
    )
