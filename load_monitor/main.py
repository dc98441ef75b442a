"""
主程序入口

使用方式:
    load-monitor --config /etc/load-monitor/config.yaml
    load-monitor --port 9000 --log-level DEBUG

启动两个并发任务：过期样本清理、REST API 服务。API 服务退出后清理任务随之停止。
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import uvicorn
import yaml
from pydantic import ValidationError

from . import __version__
from .config import AppConfig, LoggingConfig, load_config, set_config
from .errors import InvalidInputError
from .maintenance import run_retention
from .service import get_monitor

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="load-monitor",
        description="Rolling per-server CPU/memory load averages over HTTP",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: $LOAD_MONITOR_CONFIG_PATH or ./config.yaml)",
    )
    parser.add_argument("--host", default=None, help="Override api.host")
    parser.add_argument("--port", type=int, default=None, help="Override api.port")
    parser.add_argument("--log-level", default=None, help="Override logging.level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    """加载配置文件，再应用命令行覆盖项"""
    config = load_config(args.config)

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if overrides:
        config = config.model_copy(update={"api": config.api.model_copy(update=overrides)})
    if args.log_level is not None:
        config = config.model_copy(
            update={"logging": config.logging.model_copy(update={"level": args.log_level})}
        )
    return config


def setup_logging(config: LoggingConfig) -> List[logging.Handler]:
    """配置根日志，返回已安装的处理器"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding="utf-8"))

    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # 访问日志太吵，只保留警告
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return handlers


async def run_api_server(config: AppConfig):
    """运行 API 服务器，直到收到退出信号"""
    from .api.app import create_app

    server = uvicorn.Server(uvicorn.Config(
        app=create_app(),
        host=config.api.host,
        port=config.api.port,
        log_level=config.logging.level.lower(),
        access_log=False,
    ))
    await server.serve()


async def main(config: AppConfig):
    """启动清理任务和 API 服务"""
    logger.info(f"Load Monitor v{__version__} listening on {config.api.host}:{config.api.port}")
    logger.info(f"Windows: {', '.join(config.windows)}; retention: {config.retention_period}")

    monitor = get_monitor()
    retention_task = asyncio.create_task(
        run_retention(monitor, config.retention.sweep_interval_seconds)
    )
    try:
        await run_api_server(config)
    except asyncio.CancelledError:
        logger.info("Server cancelled, shutting down...")
    finally:
        retention_task.cancel()
        await asyncio.gather(retention_task, return_exceptions=True)
        logger.info(f"Stopped with {monitor.stats()['entities']} servers tracked")


def cli(argv: Optional[Sequence[str]] = None):
    """命令行入口"""
    args = parse_args(argv)
    try:
        config = build_config(args)
    except (ValidationError, InvalidInputError, yaml.YAMLError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    set_config(config)
    setup_logging(config.logging)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")


if __name__ == "__main__":
    cli()
