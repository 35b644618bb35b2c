"""Shared thread executors for the voice pipeline and transport I/O.

The MFCC/embedding/matching pipeline is CPU-bound and synchronous; the HTTP
layer hands it to a dedicated pool so the event loop stays responsive.
Serial port open/close calls block and go to the I/O pool.

Usage:
    from core.executors import run_voice_bound, run_io_bound

    result = await run_voice_bound(voice_service.verify, session, signal)
    await run_io_bound(relay.connect)
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, TypeVar, ParamSpec

logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')

VOICE_TASK_TIMEOUT_SECONDS = 15.0
IO_TASK_TIMEOUT_SECONDS = 30.0

# Lazily initialized
_VOICE_EXECUTOR: ThreadPoolExecutor | None = None
_IO_EXECUTOR: ThreadPoolExecutor | None = None


def _get_optimal_workers(task_type: str = "voice") -> int:
    """Calculate worker count based on task type and CPU cores."""
    cpu_count = os.cpu_count() or 2

    if task_type == "voice":
        return min(4, max(2, cpu_count))
    elif task_type == "io":
        # A single serial link; a couple of workers is plenty
        return 2
    else:
        return max(2, cpu_count)


def get_voice_executor() -> ThreadPoolExecutor:
    """Get or create the executor for feature extraction and matching."""
    global _VOICE_EXECUTOR
    if _VOICE_EXECUTOR is None:
        max_workers = _get_optimal_workers("voice")
        _VOICE_EXECUTOR = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="voice_pipeline_"
        )
        logger.info(f"Created voice pipeline executor with {max_workers} workers")
    return _VOICE_EXECUTOR


def get_io_executor() -> ThreadPoolExecutor:
    """Get or create executor for blocking transport I/O."""
    global _IO_EXECUTOR
    if _IO_EXECUTOR is None:
        max_workers = _get_optimal_workers("io")
        _IO_EXECUTOR = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="io_bound_"
        )
        logger.info(f"Created I/O executor with {max_workers} workers")
    return _IO_EXECUTOR


async def _run_in(
    executor: ThreadPoolExecutor,
    timeout: float,
    func: Callable[..., T],
    *args,
    **kwargs,
) -> T:
    loop = asyncio.get_running_loop()
    if kwargs:
        future = loop.run_in_executor(executor, partial(func, *args, **kwargs))
    else:
        future = loop.run_in_executor(executor, func, *args)

    try:
        return await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Task {getattr(func, '__name__', func)} timed out after {timeout:.0f}s")
        raise


async def run_voice_bound(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a voice pipeline call (enroll/verify) in the dedicated executor.

    Args:
        func: The pipeline function
        *args: Positional arguments
        **kwargs: Keyword arguments

    Returns:
        The function's return value
    """
    return await _run_in(get_voice_executor(), VOICE_TASK_TIMEOUT_SECONDS, func, *args, **kwargs)


async def run_io_bound(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a blocking transport call in the I/O executor."""
    return await _run_in(get_io_executor(), IO_TASK_TIMEOUT_SECONDS, func, *args, **kwargs)


def shutdown_executors() -> None:
    """Shutdown all executors gracefully.

    Call this during application shutdown to clean up resources.
    """
    global _VOICE_EXECUTOR, _IO_EXECUTOR

    for name, executor in [
        ("Voice", _VOICE_EXECUTOR),
        ("I/O", _IO_EXECUTOR),
    ]:
        if executor is not None:
            logger.info(f"Shutting down {name} executor...")
            executor.shutdown(wait=True, cancel_futures=False)

    _VOICE_EXECUTOR = None
    _IO_EXECUTOR = None

    logger.info("All executors shut down")
