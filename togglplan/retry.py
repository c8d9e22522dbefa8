from __future__ import annotations

import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# 429 and every 5xx except 501 Not Implemented.
RETRY_STATUSES = frozenset({429, 500, *range(502, 600)})

MAX_ATTEMPTS = 5
RETRY_WAIT_MIN = 1.0
RETRY_WAIT_MAX = 30.0


class BoundedRetry(Retry):
    """Retry whose exponential backoff is clamped to ``[wait_min, wait_max]``.

    The stock policy sleeps 0s before the first retry; clamping makes the
    schedule 1, 2, 4, 8... seconds with the default bounds. A Retry-After
    header on 429/503 replaces the backoff but is capped at ``wait_max``.
    """

    def __init__(
        self,
        *args,
        wait_min: float = RETRY_WAIT_MIN,
        wait_max: float = RETRY_WAIT_MAX,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.wait_min = wait_min
        self.wait_max = wait_max

    def new(self, **kw) -> BoundedRetry:
        retry = super().new(**kw)
        retry.wait_min = self.wait_min
        retry.wait_max = self.wait_max
        return retry

    def get_backoff_time(self) -> float:
        return min(max(super().get_backoff_time(), self.wait_min), self.wait_max)

    def sleep_for_retry(self, response) -> bool:
        # Retry-After is honoured but never longer than wait_max.
        retry_after = self.get_retry_after(response)
        if not retry_after:
            return False
        time.sleep(min(retry_after, self.wait_max))
        return True


def build_retry(
    max_attempts: int = MAX_ATTEMPTS,
    wait_min: float = RETRY_WAIT_MIN,
    wait_max: float = RETRY_WAIT_MAX,
) -> BoundedRetry:
    retries = max(max_attempts - 1, 0)
    return BoundedRetry(
        total=retries,
        backoff_factor=1.0,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=None,  # retry any verb
        raise_on_status=False,
        respect_retry_after_header=True,
        wait_min=wait_min,
        wait_max=wait_max,
    )


def session_with_retries(
    max_attempts: int = MAX_ATTEMPTS,
    wait_min: float = RETRY_WAIT_MIN,
    wait_max: float = RETRY_WAIT_MAX,
) -> requests.Session:
    sess = requests.Session()
    adapter = HTTPAdapter(max_retries=build_retry(max_attempts, wait_min, wait_max))
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess
