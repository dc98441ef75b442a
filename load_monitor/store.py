"""
服务器样本存储

按服务器名称哈希分片，每个分片一把锁，只保护 名称 -> 历史 的映射；
追加样本时再使用各历史自己的锁。不同服务器的写入不会在同一把全局锁上排队。
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from .errors import InvalidInputError
from .history import SampleHistory
from .models import Sample
from .utils import utc_now

logger = logging.getLogger(__name__)


class _Shard:
    __slots__ = ("lock", "histories")

    def __init__(self):
        self.lock = threading.Lock()
        self.histories: Dict[str, SampleHistory] = {}


class EntityStore:
    """
    服务器名称 -> 样本历史 的并发安全映射

    条目在首次写入时创建，进程生命周期内不会被删除。
    """

    def __init__(
        self,
        shard_count: int = 64,
        retention: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            shard_count: 分片数量
            retention: 每个历史的保留时长
            clock: 当前时间来源（传给每个历史）
        """
        if shard_count < 1:
            raise ValueError("shard_count must be at least 1")
        self.retention = retention
        self.clock = clock
        self._shards = [_Shard() for _ in range(shard_count)]

    def _shard_for(self, entity: str) -> _Shard:
        return self._shards[hash(entity) % len(self._shards)]

    def get_or_create(self, entity: str) -> SampleHistory:
        """获取服务器历史，不存在则创建空历史"""
        if not entity:
            raise InvalidInputError("Server name must not be empty")

        shard = self._shard_for(entity)
        with shard.lock:
            history = shard.histories.get(entity)
            if history is None:
                history = SampleHistory(entity, retention=self.retention, clock=self.clock)
                shard.histories[entity] = history
                logger.info(f"Tracking new server '{entity}'")
        return history

    def upsert(self, entity: str, sample: Sample) -> None:
        """追加样本，服务器不存在时先创建"""
        self.get_or_create(entity).append(sample)

    def lookup(self, entity: str) -> Optional[SampleHistory]:
        """查询服务器历史，未知服务器返回 None（与空历史区分）"""
        shard = self._shard_for(entity)
        with shard.lock:
            return shard.histories.get(entity)

    def __contains__(self, entity: str) -> bool:
        return self.lookup(entity) is not None

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.histories)
        return total

    def entities(self) -> List[str]:
        """所有已知服务器名称（排序后）"""
        names: List[str] = []
        for shard in self._shards:
            with shard.lock:
                names.extend(shard.histories.keys())
        return sorted(names)

    def histories(self) -> List[SampleHistory]:
        result: List[SampleHistory] = []
        for shard in self._shards:
            with shard.lock:
                result.extend(shard.histories.values())
        return result

    def sample_count(self) -> int:
        return sum(len(h) for h in self.histories())

    def prune(self, now: datetime) -> int:
        """对所有历史执行过期清理，返回丢弃的样本总数"""
        return sum(h.prune(now) for h in self.histories())
