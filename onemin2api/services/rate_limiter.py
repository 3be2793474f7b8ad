"""
固定窗口限流（内存版，单进程）

按客户端 IP 计数，窗口边界对齐到 window_seconds 的整数倍
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class FixedWindowRateLimiter:
    """
    固定窗口限流器

    所有请求都在同一个事件循环中处理，计数更新之间没有 await，无需加锁
    """

    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, Tuple[int, int]] = {}
        self._current_bucket: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self.limit > 0 and self.window_seconds > 0

    def hit(self, key: str) -> RateLimitResult:
        """
        记录一次请求并返回是否放行

        Args:
            key: 限流键（客户端 IP）

        Returns:
            RateLimitResult
        """
        if not self.enabled:
            return RateLimitResult(True, self.limit, self.limit, 0)

        now = self._clock()
        bucket = int(now // self.window_seconds)
        reset_at = (bucket + 1) * self.window_seconds

        if bucket != self._current_bucket:
            self._prune(bucket)
            self._current_bucket = bucket

        _, count = self._buckets.get(key, (bucket, 0))
        count += 1
        self._buckets[key] = (bucket, count)

        allowed = count <= self.limit
        if not allowed and count == self.limit + 1:
            logger.warning(f"⚠ 触发限流: key={key}, limit={self.limit}, window={self.window_seconds}s")

        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_seconds=max(0, int(reset_at - now)),
        )

    def _prune(self, bucket: int) -> None:
        # 窗口切换时清理全部过期计数，与触发请求的 key 无关
        stale = [key for key, (b, _) in self._buckets.items() if b != bucket]
        for key in stale:
            del self._buckets[key]

    def reset(self) -> None:
        self._buckets.clear()
        self._current_bucket = None
