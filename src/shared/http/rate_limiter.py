"""レート制限ユーティリティ（外部APIの利用規約を守るため）"""

import threading
import time
from typing import Callable, Optional

from ..logging.config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    リクエスト間に最小間隔を設けるレートリミッター

    複数スレッドから呼ばれても間隔を守る（FastAPIの同期エンドポイントはスレッドプールで動く）
    """

    def __init__(
        self,
        requests_per_second: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            requests_per_second: 秒あたりの最大リクエスト数
            clock: 現在時刻（秒）を返す関数
            sleep: 待機関数（テスト用に差し替え可能）
        """
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive: {requests_per_second}")

        self.min_interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.last_request_time: Optional[float] = None

        logger.debug(f"RateLimiter initialized: min_interval={self.min_interval:.2f}s")

    def wait(self) -> None:
        """前回のリクエストから最小間隔が経過するまで待機"""
        with self._lock:
            now = self._clock()

            if self.last_request_time is not None:
                elapsed = now - self.last_request_time
                if elapsed < self.min_interval:
                    sleep_duration = self.min_interval - elapsed
                    logger.debug(f"Rate limiting: sleeping for {sleep_duration:.2f}s")
                    self._sleep(sleep_duration)
                    now = self._clock()

            self.last_request_time = now

    def reset(self) -> None:
        """レート制限をリセット"""
        with self._lock:
            self.last_request_time = None
