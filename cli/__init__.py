"""
CLI模块

包含命令行接口相关功能：
- handlers: 命令处理函数
- commands: argparse 定义
"""
from cli.handlers import (
    handle_extract,
    handle_info,
    handle_proxy,
    handle_serve,
    print_statistics,
)
from cli.commands import create_parser

__all__ = [
    'handle_extract',
    'handle_info',
    'handle_proxy',
    'handle_serve',
    'print_statistics',
    'create_parser',
]
