"""Run outbound calls concurrently on a shared thread pool."""

from contextvars import copy_context
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, List


_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="notifier")


def run_async(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
    """Submit *func* to the shared pool, carrying the caller's contextvars.

    The request's structlog context (``trace_id`` and friends) is copied, so
    log lines emitted by workers are attributed to the request that started
    them.
    """

    context = copy_context()
    return _executor.submit(context.run, func, *args, **kwargs)


def gather_results(futures: Iterable[Future]) -> List[Any]:
    """Wait for every future and return their results in submission order.

    Workers are expected to report failures in their return value; an
    exception escaping one is re-raised here.
    """

    return [future.result() for future in list(futures)]
