#!/usr/bin/env python3
"""
Marionette 服务启动脚本

启动捕获/回放 REST API 服务。

使用方式:
    python start_server.py                      # 使用环境变量或默认配置启动
    python start_server.py --port 9000          # 自定义端口
    python start_server.py --log-level DEBUG    # 调试模式
    python start_server.py --persistent         # 镜像写入磁盘，重启后可恢复捕获
"""

import argparse

import uvicorn

from marionette.api import create_app
from marionette.config import get_config, set_config
from marionette.logger import LogFormat, LogLevel, setup_logging

# 颜色输出
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(msg: str):
    print(f"{BLUE}[Marionette]{RESET} {msg}")


def main():
    config = get_config()

    parser = argparse.ArgumentParser(
        description="Marionette 服务启动器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
    python start_server.py --host 0.0.0.0 --port 9000
    python start_server.py --log-format json --log-file
        """,
    )
    parser.add_argument(
        "--host",
        type=str,
        default=config.server.host,
        help=f"API 服务器地址 (默认: {config.server.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.server.port,
        help=f"API 服务器端口 (默认: {config.server.port})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log.level.name,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=config.log.format.value,
        choices=[f.value for f in LogFormat],
        help="日志格式",
    )
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="同时写入轮转日志文件",
    )
    parser.add_argument(
        "--persistent",
        action="store_true",
        help="镜像状态写入磁盘",
    )

    args = parser.parse_args()

    config.server.host = args.host
    config.server.port = args.port
    config.log.level = LogLevel[args.log_level]
    config.log.format = LogFormat(args.log_format)
    config.log.enable_file = config.log.enable_file or args.log_file
    config.store.persistent = config.store.persistent or args.persistent
    set_config(config)

    setup_logging(config.log.to_log_config())

    print_status("=" * 50)
    print_status("  Marionette 服务启动器")
    print_status("=" * 50)
    print_status(f"  - REST API: http://{args.host}:{args.port}")
    print_status(f"    - API 文档: http://{args.host}:{args.port}/docs")
    print_status(f"    - 健康检查: http://{args.host}:{args.port}/health")
    print_status("按 Ctrl+C 停止服务")

    uvicorn.run(
        create_app(config=config),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
