"""
Bounded concurrent fan-out over remote calls.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, TypeVar

from tqdm import tqdm

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def map_bounded(
    fn: Callable[[str], T],
    names: Iterable[str],
    *,
    max_workers: int,
    desc: str,
) -> Dict[str, T]:
    """Call ``fn(name)`` for every name with at most ``max_workers`` in flight.

    Results come back keyed by name, in input order. The first failure
    cancels whatever has not started yet and is re-raised unchanged.
    """
    ordered = list(dict.fromkeys(names))
    if not ordered:
        return {}

    results: Dict[str, T] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(ordered)))) as ex:
        futs: Dict[Future, str] = {ex.submit(fn, name): name for name in ordered}
        try:
            for fut in tqdm(as_completed(futs), total=len(futs), desc=desc, disable=None):
                results[futs[fut]] = fut.result()
        except BaseException:
            for f in futs:
                f.cancel()
            raise

    _logger.debug("%s: %d calls completed", desc, len(results))
    return {name: results[name] for name in ordered}
