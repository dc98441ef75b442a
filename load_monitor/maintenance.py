"""
过期数据清理任务

定期清理所有服务器中超出保留期的样本，防止长期运行时内存无限增长。
"""

import asyncio
import logging

from .service import LoadMonitor

logger = logging.getLogger(__name__)


async def sweep_once(monitor: LoadMonitor) -> int:
    """执行一次清理（在线程池中运行，避免阻塞事件循环）"""
    dropped = await asyncio.to_thread(monitor.prune)
    if dropped:
        logger.info(f"Retention sweep dropped {dropped} samples")
    else:
        logger.debug("Retention sweep dropped nothing")
    return dropped


async def run_retention(monitor: LoadMonitor, interval: float):
    """
    运行数据清理任务

    Args:
        monitor: 核心服务实例
        interval: 清理间隔（秒）
    """
    logger.info(f"Starting retention task (interval={interval:.0f}s, retention={monitor.retention})")

    while True:
        try:
            await asyncio.sleep(interval)
            await sweep_once(monitor)
        except asyncio.CancelledError:
            logger.info("Retention task cancelled")
            raise
        except Exception as e:
            logger.error(f"Retention sweep error: {e}", exc_info=True)
            await asyncio.sleep(60)  # 出错后等 1 分钟
