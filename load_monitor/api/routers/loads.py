"""
负载 API

提供负载上报和分桶平均值查询。

处理函数使用普通 def，由线程池并发执行；核心层使用线程锁。
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...models import (
    LoadsResponse, SampleIn, SampleResponse, WindowResponse, BucketResponse,
    QueryResult, Window,
)
from ...service import LoadMonitor
from ..dependencies import get_load_monitor

router = APIRouter(prefix="/api", tags=["loads"])


def build_loads_response(result: QueryResult) -> LoadsResponse:
    """把核心查询结果转换为响应模型"""
    windows = []
    for averages in result.windows:
        window = averages.window
        windows.append(WindowResponse(
            window=window.label,
            length_seconds=int(window.length.total_seconds()),
            bucket_seconds=int(window.bucket_width.total_seconds()),
            buckets=[
                BucketResponse(
                    index=b.index,
                    start=b.start,
                    end=b.end,
                    count=b.count,
                    cpu_avg=b.cpu_average,
                    mem_avg=b.mem_average,
                )
                for b in averages.buckets
            ],
            cpu=averages.cpu,
            mem=averages.mem,
        ))

    message = None
    if result.is_empty:
        message = f"No update information for server {result.entity} found."
    elif not any(w.buckets for w in result.windows):
        message = f"No recent samples for server {result.entity} in the requested windows."

    return LoadsResponse(
        name=result.entity,
        ts=result.now,
        sample_count=result.sample_count,
        has_data=not result.is_empty,
        message=message,
        windows=windows,
    )


@router.post("/samples", response_model=SampleResponse, status_code=status.HTTP_201_CREATED)
def record_sample(payload: SampleIn, monitor: LoadMonitor = Depends(get_load_monitor)):
    """
    记录一次负载上报

    time 缺省时使用服务端接收时间。
    """
    sample = monitor.record_sample(payload.name, payload.cpu, payload.mem, payload.time)
    return SampleResponse(name=sample.entity, cpu=sample.cpu, mem=sample.mem, time=sample.timestamp)


@router.get("/servers", response_model=List[str])
def list_servers(monitor: LoadMonitor = Depends(get_load_monitor)):
    """获取所有已上报过的服务器名称"""
    return monitor.entities()


@router.get("/servers/{name}/loads", response_model=LoadsResponse)
def get_loads(
    name: str,
    window: Optional[List[str]] = Query(None, description="窗口，如 60m:1m，可重复；缺省为配置的窗口"),
    fill_gaps: bool = Query(False, description="是否输出没有样本的桶"),
    monitor: LoadMonitor = Depends(get_load_monitor),
):
    """
    查询服务器分桶平均负载

    默认返回最近 60 分钟按分钟、最近 24 小时按小时的平均值。
    未知服务器返回 404，窗口不合法返回 400。
    """
    windows = [Window.parse(text) for text in window] if window else None
    result = monitor.query_averages(name, windows=windows, fill_gaps=fill_gaps)
    return build_loads_response(result)
