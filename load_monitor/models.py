"""
数据模型定义

包括：
- 核心值类型（样本、窗口、分桶平均值、查询结果）
- Pydantic 请求/响应模型（用于 API 和数据验证）
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field

from .errors import InvalidInputError
from .utils import format_duration, parse_duration


# =============================================================================
# 核心值类型
# =============================================================================

@dataclass(frozen=True)
class Sample:
    """一次负载上报（存储后不可变）"""
    entity: str
    cpu: float
    mem: float
    timestamp: datetime


@dataclass(frozen=True)
class Window:
    """
    查询窗口：回看时长 + 桶宽

    length 必须是 bucket_width 的整数倍，由 validate() 校验。
    """
    length: timedelta
    bucket_width: timedelta

    @classmethod
    def parse(cls, text: str) -> "Window":
        """解析 "60m:1m" 形式的窗口描述"""
        parts = (text or "").split(":")
        if len(parts) != 2:
            raise InvalidInputError(f"Invalid window '{text}', expected <length>:<bucket>, e.g. 60m:1m")
        window = cls(parse_duration(parts[0]), parse_duration(parts[1]))
        window.validate()
        return window

    def validate(self) -> None:
        if self.length <= timedelta(0) or self.bucket_width <= timedelta(0):
            raise InvalidInputError(f"Window {self.label} must have a positive length and bucket width")
        if self.length % self.bucket_width != timedelta(0):
            raise InvalidInputError(
                f"Window length {format_duration(self.length)} is not a multiple "
                f"of bucket width {format_duration(self.bucket_width)}"
            )

    @property
    def bucket_count(self) -> int:
        return self.length // self.bucket_width

    @property
    def label(self) -> str:
        return f"{format_duration(self.length)}:{format_duration(self.bucket_width)}"


# 系统默认的两个查询窗口：最近 60 分钟按分钟，最近 24 小时按小时
HOURLY_BY_MINUTE = Window(timedelta(minutes=60), timedelta(minutes=1))
DAILY_BY_HOUR = Window(timedelta(hours=24), timedelta(hours=1))
DEFAULT_WINDOWS = (HOURLY_BY_MINUTE, DAILY_BY_HOUR)


@dataclass(frozen=True)
class BucketAverage:
    """
    单个时间桶的平均值

    index 从 1 开始，1 表示最近的桶，覆盖 [start, end)。
    没有样本的桶 count=0，平均值为 None。
    """
    index: int
    start: datetime
    end: datetime
    count: int
    cpu_average: Optional[float] = None
    mem_average: Optional[float] = None


@dataclass
class WindowAverages:
    """单个窗口的计算结果，cpu / mem 两个序列按位置一一对应同一个桶"""
    window: Window
    buckets: List[BucketAverage] = field(default_factory=list)

    @property
    def cpu(self) -> List[Optional[float]]:
        return [b.cpu_average for b in self.buckets]

    @property
    def mem(self) -> List[Optional[float]]:
        return [b.mem_average for b in self.buckets]


@dataclass
class QueryResult:
    """一次查询的完整结果"""
    entity: str
    now: datetime
    sample_count: int
    windows: List[WindowAverages] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """服务器已知但当前没有任何样本"""
        return self.sample_count == 0


# =============================================================================
# Pydantic 请求/响应模型
# =============================================================================

class SampleIn(BaseModel):
    """负载上报请求（与原始上报格式兼容）"""
    name: str = Field(..., description="服务器名称")
    cpu: float = Field(..., description="CPU 负载")
    mem: float = Field(..., description="内存负载")
    time: Optional[datetime] = Field(None, description="采样时间（ISO 8601），缺省为接收时间")


class SampleResponse(BaseModel):
    """已存储的样本"""
    name: str
    cpu: float
    mem: float
    time: datetime


class BucketResponse(BaseModel):
    """单个桶"""
    index: int
    start: datetime
    end: datetime
    count: int
    cpu_avg: Optional[float] = None
    mem_avg: Optional[float] = None


class WindowResponse(BaseModel):
    """单个窗口的分桶平均值"""
    window: str
    length_seconds: int
    bucket_seconds: int
    buckets: List[BucketResponse] = Field(default_factory=list)
    cpu: List[Optional[float]] = Field(default_factory=list)
    mem: List[Optional[float]] = Field(default_factory=list)


class LoadsResponse(BaseModel):
    """负载查询响应（GET /api/servers/{name}/loads）"""
    name: str
    ts: datetime
    sample_count: int
    has_data: bool
    message: Optional[str] = None
    windows: List[WindowResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    timestamp: datetime
    entities: int
    samples: int
