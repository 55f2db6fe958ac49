"""
配置管理模块 - 网页图片提取器
统一配置管理，支持 .env / 环境变量覆盖
"""
from pydantic import BaseModel, Field
from typing import List
import os
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# 项目根目录
BASE_DIR = Path(__file__).parent

VERSION = "1.0.0"


class CrawlerConfig(BaseModel):
    """抓取配置（页面获取 / 元数据探测）"""
    # 超时配置
    page_timeout: float = Field(default=15.0, description="页面获取超时（秒）")
    metadata_timeout: float = Field(default=5.0, description="元数据探测超时（秒）")

    # 重试配置（仅页面获取）
    max_retries: int = Field(default=3, description="最大尝试次数")
    retry_delay: float = Field(default=2.0, description="重试基础延迟（秒）")

    # User-Agent配置
    rotate_user_agent: bool = Field(default=False, description="是否轮换UA")
    accept_language: str = Field(default="en-US,en;q=0.9", description="Accept-Language 请求头")


class ExtractorConfig(BaseModel):
    """提取流水线配置"""
    max_enriched_images: int = Field(default=50, description="最多补全元数据的图片数")
    batch_size: int = Field(default=5, description="每批并发探测数")
    batch_delay: float = Field(default=0.3, description="批次间隔（秒）")
    max_data_uri_length: int = Field(default=500, description="data URI 最大长度")
    snippet_max_length: int = Field(default=300, description="原始元素片段最大长度")
    enable_enrichment: bool = Field(default=True, description="是否补全元数据")


class RateLimitConfig(BaseModel):
    """出站请求限速配置（进程级）"""
    max_requests: int = Field(default=20, description="窗口内最大请求数")
    window_seconds: float = Field(default=60.0, description="窗口长度（秒）")


class ProxyConfig(BaseModel):
    """图片代理配置"""
    allowed_domains: List[str] = Field(default_factory=list, description="允许的域名（为空表示全部允许）")
    timeout: float = Field(default=15.0, description="代理请求超时（秒）")
    cache_max_age: int = Field(default=86400, description="Cache-Control max-age（秒）")
    chunk_size: int = Field(default=64 * 1024, description="转发块大小（字节）")
    sniff_bytes: int = Field(default=64 * 1024, description="info 嗅探读取的最大字节数")


class ServerConfig(BaseModel):
    """HTTP 服务配置"""
    host: str = Field(default="0.0.0.0", description="监听地址")
    port: int = Field(default=8080, description="监听端口")


class LogConfig(BaseModel):
    """日志配置"""
    log_level: str = Field(default="INFO", description="日志级别")
    log_dir: Path = Field(default=BASE_DIR / "logs", description="日志目录")
    log_file: str = Field(default="extractor.log", description="日志文件名")
    rotation: str = Field(default="100 MB", description="日志轮转大小")
    retention: str = Field(default="30 days", description="日志保留时间")


class Config(BaseModel):
    """全局配置"""
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log: LogConfig = Field(default_factory=LogConfig)


# ============================================================================
# 环境变量解析
# ============================================================================

def _env_int(name: str, default: int) -> int:
    """读取整数环境变量，非法值回退默认值"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️  环境变量 {name}={raw!r} 不是整数，使用默认值 {default}")
        return default


def _env_float(name: str, default: float) -> float:
    """读取浮点环境变量，非法值回退默认值"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️  环境变量 {name}={raw!r} 不是数字，使用默认值 {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    """逗号分隔列表"""
    raw = os.getenv(name, "")
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


# 从环境变量加载配置
def load_config_from_env() -> Config:
    """从环境变量加载配置"""
    config_data = {
        "crawler": {
            "page_timeout": _env_float("PAGE_TIMEOUT", 15.0),
            "metadata_timeout": _env_float("METADATA_TIMEOUT", 5.0),
            "max_retries": _env_int("MAX_RETRIES", 3),
            "rotate_user_agent": _env_bool("ROTATE_USER_AGENT", False),
        },
        "extractor": {
            "max_enriched_images": _env_int("MAX_ENRICHED_IMAGES", 50),
            "batch_size": _env_int("ENRICH_BATCH_SIZE", 5),
            "batch_delay": _env_float("ENRICH_BATCH_DELAY", 0.3),
            "enable_enrichment": _env_bool("ENABLE_ENRICHMENT", True),
        },
        "rate_limit": {
            "max_requests": _env_int("RATE_LIMIT_MAX_REQUESTS", 20),
            "window_seconds": _env_float("RATE_LIMIT_WINDOW", 60.0),
        },
        "proxy": {
            "allowed_domains": _env_list("PROXY_ALLOWED_DOMAINS"),
            "timeout": _env_float("PROXY_TIMEOUT", 15.0),
            "cache_max_age": _env_int("PROXY_CACHE_MAX_AGE", 86400),
        },
        "server": {
            "host": os.getenv("SERVER_HOST", "0.0.0.0"),
            "port": _env_int("SERVER_PORT", 8080),
        },
        "log": {
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        },
    }
    return Config(**config_data)


# 全局配置实例（默认从环境变量加载）
config = load_config_from_env()
