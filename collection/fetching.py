"""Bounded parallel fetches against the upstream provider"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Hashable, Iterable, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = logging.getLogger(__name__)


def fetch_bounded(
    fetch: Callable[[K], V],
    keys: Iterable[K],
    max_workers: int = 5,
) -> Tuple[Dict[K, V], Dict[K, Exception]]:
    """
    Run `fetch` for every key on a bounded thread pool.

    Returns (results, failures); a failing key never cancels the others.
    Results preserve the input key order.
    """
    keys = list(dict.fromkeys(keys))
    results: Dict[K, V] = {}
    failures: Dict[K, Exception] = {}
    if not keys:
        return results, failures

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(keys)))) as pool:
        futures = [(key, pool.submit(fetch, key)) for key in keys]
        for key, future in futures:
            try:
                results[key] = future.result()
            except Exception as e:
                failures[key] = e

    return results, failures
