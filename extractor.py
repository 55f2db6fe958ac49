"""
网页图片提取器 - 命令行入口

子命令：extract / info / proxy / serve
"""
import asyncio
import sys
from loguru import logger

from cli import create_parser, handle_extract, handle_info, handle_proxy, handle_serve
from config import config


def setup_logging(level: str = None):
    """配置日志：终端彩色输出 + 按大小轮转的文件日志"""
    log_config = config.log
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level or log_config.log_level,
        colorize=True
    )

    log_file = log_config.log_dir / log_config.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        rotation=log_config.rotation,
        retention=log_config.retention,
        encoding="utf-8",
        level="DEBUG"
    )


ASYNC_HANDLERS = {
    'extract': handle_extract,
    'info': handle_info,
    'proxy': handle_proxy,
}


def main(argv=None) -> int:
    """主函数 - 子命令模式"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging()

    # serve 自己管理事件循环
    if args.command == 'serve':
        return handle_serve(args)
    return asyncio.run(ASYNC_HANDLERS[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
