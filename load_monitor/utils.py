"""
工具函数模块
"""

import re
from datetime import datetime, timedelta, timezone

from .errors import InvalidInputError

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$")

_UNIT_SECONDS = {
    "d": 86400,
    "h": 3600,
    "m": 60,
    "s": 1,
}


def utc_now() -> datetime:
    """当前 UTC 时间（带时区）"""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """
    统一转换为带时区的 UTC 时间

    不带时区的时间按 UTC 解释。
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_duration(text: str) -> timedelta:
    """
    解析紧凑时长格式

    Args:
        text: 如 "60m"、"1h"、"30s"、"1d"

    Returns:
        对应的 timedelta

    Raises:
        InvalidInputError: 格式不合法时抛出
    """
    match = _DURATION_RE.match(text or "")
    if not match:
        raise InvalidInputError(f"Invalid duration '{text}', expected e.g. 60m, 1h, 30s")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


def format_duration(value: timedelta) -> str:
    """把 timedelta 格式化为能整除的最大单位，如 3600s -> "1h" """
    seconds = int(value.total_seconds())
    for unit, size in _UNIT_SECONDS.items():
        if seconds and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"
