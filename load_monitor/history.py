"""
单台服务器的样本历史

样本按时间戳有序存放（二分插入），乱序到达的样本也会落到正确位置；
时间戳相同的样本保持到达顺序。

过期清理只以当前时间为准：追加时以新样本自身时间戳为基准（仅当它不晚于当前时间），
定期清理以 now - retention 为准。时间戳在未来的样本不会触发任何清理。
"""

import threading
from bisect import bisect_left, bisect_right
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from .models import Sample
from .utils import utc_now


class SampleHistory:
    """
    样本历史（线程安全）

    写入和快照都在同一把锁内完成，读方拿到的是某一时刻的完整副本，
    不会看到写了一半的数据。
    """

    def __init__(
        self,
        entity: str,
        retention: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            entity: 服务器名称
            retention: 保留时长，None 表示不过期
            clock: 当前时间来源
        """
        self.entity = entity
        self.retention = retention
        self._clock = clock
        self._times: List[datetime] = []
        self._samples: List[Sample] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: Sample) -> None:
        """按时间戳插入样本，并丢弃早于 新样本时间 - retention 的数据"""
        with self._lock:
            idx = bisect_right(self._times, sample.timestamp)
            self._times.insert(idx, sample.timestamp)
            self._samples.insert(idx, sample)
            # 新样本时间不晚于当前时间时，它之前 retention 以外的样本在定期清理中同样会被丢弃
            if self.retention is not None and sample.timestamp <= self._clock():
                self._drop_before(sample.timestamp - self.retention)

    def prune(self, now: datetime) -> int:
        """丢弃早于 now - retention 的样本，返回丢弃数量"""
        if self.retention is None:
            return 0
        with self._lock:
            return self._drop_before(now - self.retention)

    def snapshot(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> Tuple[Sample, ...]:
        """
        获取 [since, until) 范围内样本的一致性副本

        Args:
            since: 起始时间（含），None 表示不限
            until: 结束时间（不含），None 表示不限

        Returns:
            按时间升序排列的样本元组
        """
        return self.snapshot_with_count(since, until)[0]

    def snapshot_with_count(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> Tuple[Tuple[Sample, ...], int]:
        """同一把锁内取得 [since, until) 范围的副本和历史总样本数"""
        with self._lock:
            lo = 0 if since is None else bisect_left(self._times, since)
            hi = len(self._times) if until is None else bisect_left(self._times, until)
            return tuple(self._samples[lo:hi]), len(self._samples)

    def _drop_before(self, cutoff: datetime) -> int:
        # 调用方需持有锁
        if not self._times or self._times[0] >= cutoff:
            return 0
        idx = bisect_left(self._times, cutoff)
        del self._times[:idx]
        del self._samples[:idx]
        return idx
