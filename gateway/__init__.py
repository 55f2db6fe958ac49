"""
网关模块

- proxy: 图片代理（流式转发 / 信息探测）
- server: aiohttp.web 服务
"""
from gateway.proxy import ImageInfo, ImageProxy, ProxiedImage
from gateway.server import create_app, run_server

__all__ = ['ImageInfo', 'ImageProxy', 'ProxiedImage', 'create_app', 'run_server']
