"""Shared utilities for adapter implementations."""

import logging
import time
from typing import Any, Callable, TypeVar

import requests
import tiktoken

from srag.errors import TransientGatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
ENCODING_CACHE: dict[str, tiktoken.Encoding] = {}


def create_session_with_pooling(
    pool_connections: int = 10,
    pool_maxsize: int = 20,
    max_retries: int = 3,
) -> requests.Session:
    """Create a requests Session with connection pooling.

    Args:
        pool_connections: Number of connection pools to cache.
        pool_maxsize: Maximum number of connections to save per pool.
        max_retries: Maximum number of retries per connection.

    Returns:
        Configured requests Session.
    """
    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=max_retries,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def call_with_backoff(
    gateway: str,
    fn: Callable[..., T],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``fn`` and retry failures with exponential backoff.

    The delay before retry ``n`` (1-based) is ``2**n * base_delay`` seconds.

    Args:
        gateway: Name used in logs and in the raised error.
        fn: The gateway call.
        max_retries: Retries after the first call; 0 disables retrying.
        base_delay: Delay unit in seconds.
        sleep: Sleep function, injectable for tests.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        TransientGatewayError: If every call failed.
    """
    retries = 0
    while True:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            retries += 1
            if retries > max_retries:
                logger.error(f"{gateway} failed after {retries} attempts: {e}")
                raise TransientGatewayError(gateway, str(e), attempts=retries) from e

            delay = (2**retries) * base_delay
            logger.warning(
                f"{gateway} error (attempt {retries}/{max_retries + 1}): {e}. "
                f"Retrying in {delay:.1f}s"
            )
            sleep(delay)


def get_tokenizer(model: str) -> tiktoken.Encoding:
    if model not in ENCODING_CACHE:
        try:
            ENCODING_CACHE[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            ENCODING_CACHE[model] = tiktoken.get_encoding("cl100k_base")
    return ENCODING_CACHE[model]


def count_tokens(text: str, model: str = "gpt-4") -> int:
    encoder = get_tokenizer(model)
    return len(encoder.encode(text))
