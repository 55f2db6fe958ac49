"""
HTTP 服务模块（aiohttp.web）

路由：
- POST /api/extract      {"url": ...} -> {"url", "images", "message"?}
- GET  /api/proxy?url=   流式转发图片字节
- GET  /api/image-info?url=
- GET  /api/health

整个进程共享一个 aiohttp 会话与一个 RateLimiter；每次提取都是独立、无状态的。
"""
from datetime import datetime, timezone
import aiohttp
from aiohttp import web
from loguru import logger
from pydantic import ValidationError

from config import VERSION, Config
from core.errors import (
    DomainNotAllowedError,
    ExtractorError,
    InvalidUrlError,
    NetworkUnreachableError,
    NotAnImageError,
    RequestTimeoutError,
    UpstreamFailureError,
)
from core.models import ExtractRequest
from core.rate_limiter import RateLimiter
from gateway.proxy import ImageProxy
from spiders.image_spider import ImageSpider

EMPTY_RESULT_MESSAGE = (
    "No images found on this page. The page may load images dynamically "
    "with JavaScript, or the images may be protected."
)

CONFIG_KEY = web.AppKey("config", Config)
SESSION_KEY = web.AppKey("session", aiohttp.ClientSession)
RATE_LIMITER_KEY = web.AppKey("rate_limiter", RateLimiter)
PROXY_KEY = web.AppKey("proxy", ImageProxy)


def error_status(error: ExtractorError) -> int:
    """领域异常 -> HTTP 状态码"""
    if isinstance(error, NotAnImageError):
        return 400
    if isinstance(error, InvalidUrlError):
        return 400
    if isinstance(error, DomainNotAllowedError):
        return 403
    if isinstance(error, UpstreamFailureError):
        if error.status is not None and 400 <= error.status < 600:
            return error.status
        return 502
    if isinstance(error, NetworkUnreachableError):
        return 502
    if isinstance(error, RequestTimeoutError):
        return 504
    return 500


def error_response(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """把未处理的领域异常转换为 JSON 错误响应"""
    try:
        return await handler(request)
    except ExtractorError as e:
        status = error_status(e)
        logger.warning(f"⚠️  {request.method} {request.path} -> {status}: {e}")
        return error_response(status, str(e))


# ============================================================================
# 路由处理
# ============================================================================

async def handle_extract(request: web.Request) -> web.Response:
    """POST /api/extract"""
    try:
        payload = await request.json()
    except ValueError:
        return error_response(400, "request body must be JSON")
    if not isinstance(payload, dict):
        return error_response(400, "request body must be a JSON object")
    try:
        body = ExtractRequest.model_validate(payload)
    except ValidationError:
        return error_response(400, "URL is required")

    app = request.app
    spider = ImageSpider(app[CONFIG_KEY], app[RATE_LIMITER_KEY], session=app[SESSION_KEY])
    await spider.init()
    try:
        images = await spider.extract(body.url)
    finally:
        await spider.close()

    result = {"url": body.url, "images": [image.to_dict() for image in images]}
    if not images:
        result["message"] = EMPTY_RESULT_MESSAGE
    return web.json_response(result)


async def handle_proxy(request: web.Request) -> web.StreamResponse:
    """
    GET /api/proxy?url=...&referer=...

    响应头发送之前的失败映射为错误状态码；开始发送后只能中止连接。
    """
    proxy = request.app[PROXY_KEY]
    url = request.query.get("url")
    cache_max_age = request.app[CONFIG_KEY].proxy.cache_max_age

    async with proxy.open(url, referer=request.query.get("referer")) as image:
        response = web.StreamResponse(
            status=200,
            headers={
                "Content-Type": image.content_type,
                "Cache-Control": f"public, max-age={cache_max_age}",
            },
        )
        if image.content_length is not None:
            response.content_length = image.content_length
        await response.prepare(request)

        try:
            async for chunk in image.iter_chunks():
                await response.write(chunk)
        except ExtractorError as e:
            logger.error(f"❌ Proxy stream for {image.url} aborted after {image.bytes_relayed} bytes: {e}")
            if request.transport is not None:
                request.transport.close()
            return response

        await response.write_eof()
        logger.debug(f"Proxied {image.bytes_relayed} bytes from {image.url}")
        return response


async def handle_image_info(request: web.Request) -> web.Response:
    """GET /api/image-info?url=..."""
    info = await request.app[PROXY_KEY].info(request.query.get("url"))
    return web.json_response(info.to_dict())


async def handle_health(request: web.Request) -> web.Response:
    """GET /api/health"""
    return web.json_response({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "services": {"extractor": "up", "proxy": "up"},
        "rateLimit": request.app[RATE_LIMITER_KEY].get_stats(),
    })


# ============================================================================
# 应用
# ============================================================================

async def _client_context(app: web.Application):
    """共享会话 / 代理的生命周期"""
    cfg = app[CONFIG_KEY]
    session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=cfg.crawler.page_timeout))
    app[SESSION_KEY] = session
    app[PROXY_KEY] = ImageProxy(cfg, session=session)
    logger.info("🌐 HTTP session ready")
    yield
    await app[PROXY_KEY].close()
    await session.close()
    logger.info("👋 HTTP session closed")


def create_app(cfg: Config, rate_limiter: RateLimiter = None) -> web.Application:
    """
    创建 aiohttp 应用

    Args:
        cfg: 配置对象
        rate_limiter: 可选的限速器（默认按配置创建，进程内共享）
    """
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = cfg
    app[RATE_LIMITER_KEY] = rate_limiter or RateLimiter.from_config(cfg.rate_limit)
    app.cleanup_ctx.append(_client_context)

    app.router.add_post("/api/extract", handle_extract)
    app.router.add_get("/api/proxy", handle_proxy)
    app.router.add_get("/api/image-info", handle_image_info)
    app.router.add_get("/api/health", handle_health)
    return app


def run_server(cfg: Config, host: str = None, port: int = None):
    """启动服务（阻塞）；客户端断开时取消处理中的请求"""
    host = host or cfg.server.host
    port = port or cfg.server.port
    logger.info(f"🚀 Image extractor server listening on http://{host}:{port}")
    web.run_app(
        create_app(cfg),
        host=host,
        port=port,
        print=None,
        handler_cancellation=True,
    )
