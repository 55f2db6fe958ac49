"""
出站请求限速模块

进程级滑动窗口计数器：窗口内请求数超过阈值后，后续调用阻塞到窗口结束，
随后计数重置为 1（触发的那次调用）。不区分目标主机。
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional
from loguru import logger


class RateLimiter:
    """
    滑动窗口限速器

    由调用方显式创建并注入到提取驱动与元数据补全器中，
    count / window_start 的读改写由同一把 asyncio.Lock 保护。

    Example:
        limiter = RateLimiter(max_requests=20, window_seconds=60)
        await limiter.acquire()
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        初始化限速器

        Args:
            max_requests: 窗口内允许的最大请求数
            window_seconds: 窗口长度（秒）
            clock: 单调时钟（测试可注入）
            sleep: 异步等待函数（测试可注入）
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()

        self.count = 0
        self.window_start = self._clock()

        self.stats = {
            "acquired": 0,
            "delayed": 0,
            "total_delay": 0.0,
        }

    @classmethod
    def from_config(cls, rate_config) -> "RateLimiter":
        return cls(
            max_requests=rate_config.max_requests,
            window_seconds=rate_config.window_seconds,
        )

    async def acquire(self) -> float:
        """
        登记一次出站请求，必要时阻塞到窗口结束

        持锁等待：窗口已满时其它调用方也一并排队，直到新窗口开始。

        Returns:
            本次调用被延迟的秒数
        """
        async with self._lock:
            self.count += 1
            now = self._clock()
            elapsed = now - self.window_start
            delay = 0.0

            if elapsed >= self.window_seconds:
                # 窗口已过，重新计数
                self.count = 1
                self.window_start = now
            elif self.count > self.max_requests:
                delay = self.window_seconds - elapsed
                logger.info(f"⏳ Rate limiting: delaying request by {delay:.2f}s")
                self.stats["delayed"] += 1
                self.stats["total_delay"] += delay
                await self._sleep(delay)
                self.count = 1
                self.window_start = self._clock()

            self.stats["acquired"] += 1
            return delay

    def reset(self):
        """重置计数器与窗口"""
        self.count = 0
        self.window_start = self._clock()

    def get_stats(self) -> dict:
        """获取限速统计"""
        return {
            **self.stats,
            "current_count": self.count,
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
        }
