"""
分桶平均计算

把一段按时间升序排列的样本，按窗口 (length, bucket_width) 切成 k 个桶，
计算每个桶的 CPU / 内存平均值。

桶 j（j = 1..k，1 为最近）覆盖 [now - j*w, now - (j-1)*w)。
早于 now - length 或不早于 now 的样本不参与任何计算。
"""

from datetime import datetime
from typing import Dict, List, Sequence

from .models import BucketAverage, Sample, Window, WindowAverages


def _make_bucket(index: int, window: Window, now: datetime, count: int,
                 cpu_sum: float, mem_sum: float) -> BucketAverage:
    width = window.bucket_width
    return BucketAverage(
        index=index,
        start=now - index * width,
        end=now - (index - 1) * width,
        count=count,
        cpu_average=cpu_sum / count if count else None,
        mem_average=mem_sum / count if count else None,
    )


def aggregate(
    samples: Sequence[Sample],
    window: Window,
    now: datetime,
    fill_gaps: bool = False,
) -> WindowAverages:
    """
    计算单个窗口的分桶平均值

    从最新样本向前单次扫描，遇到早于窗口起点的样本即停止。

    Args:
        samples: 按时间升序排列的样本
        window: 查询窗口（length 必须是 bucket_width 的整数倍）
        now: 窗口右边界（不含）
        fill_gaps: 为 True 时输出全部 k 个桶，空桶平均值为 None；
                   默认只输出有样本的桶

    Returns:
        WindowAverages，桶按从近到远排列

    Raises:
        InvalidInputError: 窗口不合法时抛出
    """
    window.validate()

    width = window.bucket_width
    window_start = now - window.length

    buckets: List[BucketAverage] = []
    current = 0
    count = 0
    cpu_sum = 0.0
    mem_sum = 0.0

    for sample in reversed(samples):
        ts = sample.timestamp
        if ts >= now:
            continue
        if ts < window_start:
            break

        # now - ts 落在 ((j-1)*w, j*w] 内即属于桶 j
        index = -((ts - now) // width)
        if index != current:
            if count:
                buckets.append(_make_bucket(current, window, now, count, cpu_sum, mem_sum))
            current = index
            count = 0
            cpu_sum = 0.0
            mem_sum = 0.0

        count += 1
        cpu_sum += sample.cpu
        mem_sum += sample.mem

    if count:
        buckets.append(_make_bucket(current, window, now, count, cpu_sum, mem_sum))

    if fill_gaps:
        by_index: Dict[int, BucketAverage] = {b.index: b for b in buckets}
        buckets = [
            by_index.get(j) or _make_bucket(j, window, now, 0, 0.0, 0.0)
            for j in range(1, window.bucket_count + 1)
        ]

    return WindowAverages(window=window, buckets=buckets)
