"""
核心服务

对外只暴露两个操作：
- record_sample: 记录一次负载上报
- query_averages: 查询指定窗口的分桶平均值
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from .aggregator import aggregate
from .config import get_config
from .errors import InvalidInputError, NotFoundError
from .models import DEFAULT_WINDOWS, QueryResult, Sample, Window
from .store import EntityStore
from .utils import to_utc, utc_now

logger = logging.getLogger(__name__)


class LoadMonitor:
    """负载监控核心（线程安全）"""

    def __init__(
        self,
        windows: Sequence[Window] = DEFAULT_WINDOWS,
        retention: Optional[timedelta] = None,
        shard_count: int = 64,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            windows: 默认查询窗口
            retention: 样本保留时长，缺省为最长窗口
            shard_count: 存储分片数量
            clock: 当前时间来源，缺省为系统 UTC 时间
        """
        if not windows:
            raise InvalidInputError("At least one default window is required")
        for window in windows:
            window.validate()

        self.windows = list(windows)
        if retention is None:
            retention = max(w.length for w in self.windows)
        self.retention = retention
        self.clock = clock
        self.store = EntityStore(shard_count=shard_count, retention=retention, clock=clock)

    def record_sample(
        self,
        entity: str,
        cpu: float,
        mem: float,
        timestamp: Optional[datetime] = None,
    ) -> Sample:
        """
        记录一次负载上报

        Args:
            entity: 服务器名称（非空）
            cpu: CPU 负载
            mem: 内存负载
            timestamp: 采样时间，缺省为当前时间

        Returns:
            已存储的样本

        Raises:
            InvalidInputError: 服务器名为空或负载不是有限数值
        """
        if not entity:
            logger.warning("Rejected sample with empty server name")
            raise InvalidInputError("Server name must not be empty")
        if not (math.isfinite(cpu) and math.isfinite(mem)):
            logger.warning(f"Rejected non-finite sample for server {entity}: cpu={cpu}, mem={mem}")
            raise InvalidInputError(f"Load values for server '{entity}' must be finite numbers")

        sample = Sample(
            entity=entity,
            cpu=float(cpu),
            mem=float(mem),
            timestamp=to_utc(timestamp) if timestamp is not None else self.clock(),
        )
        self.store.upsert(entity, sample)
        logger.debug(f"Received an update for server {entity}")
        return sample

    def query_averages(
        self,
        entity: str,
        windows: Optional[Sequence[Window]] = None,
        now: Optional[datetime] = None,
        fill_gaps: bool = False,
    ) -> QueryResult:
        """
        查询服务器各窗口的分桶平均值

        所有窗口基于同一份历史快照计算。

        Args:
            entity: 服务器名称
            windows: 查询窗口，缺省为默认窗口
            now: 窗口右边界，缺省为当前时间
            fill_gaps: 是否输出空桶

        Returns:
            QueryResult；服务器已知但无样本时 is_empty 为 True，各窗口桶列表为空

        Raises:
            InvalidInputError: 窗口不合法
            NotFoundError: 服务器从未上报
        """
        windows = list(windows) if windows else self.windows
        for window in windows:
            window.validate()

        history = self.store.lookup(entity)
        if history is None:
            raise NotFoundError(entity)

        now = to_utc(now) if now is not None else self.clock()
        longest = max(w.length for w in windows)
        samples, total = history.snapshot_with_count(since=now - longest, until=now)

        result = QueryResult(
            entity=entity,
            now=now,
            sample_count=total,
            windows=[aggregate(samples, w, now, fill_gaps=fill_gaps) for w in windows],
        )
        logger.debug(f"Returning request for information for server {entity}")
        return result

    def prune(self, now: Optional[datetime] = None) -> int:
        """清理所有服务器的过期样本"""
        return self.store.prune(to_utc(now) if now is not None else self.clock())

    def entities(self) -> List[str]:
        return self.store.entities()

    def stats(self) -> Dict[str, int]:
        return {
            "entities": len(self.store),
            "samples": self.store.sample_count(),
        }


# 全局服务实例（延迟加载）
_monitor: Optional[LoadMonitor] = None


def get_monitor() -> LoadMonitor:
    """获取全局服务实例（按全局配置创建）"""
    global _monitor
    if _monitor is None:
        config = get_config()
        _monitor = LoadMonitor(
            windows=config.query_windows,
            retention=config.retention_period,
            shard_count=config.store.shard_count,
        )
    return _monitor


def reset_monitor():
    """重置服务实例（主要用于测试）"""
    global _monitor
    _monitor = None
