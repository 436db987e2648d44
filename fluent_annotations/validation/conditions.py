"""Condition evaluation primitives.

Conditions are plain predicates over the owning instance. Async conditions are
coroutine functions; composing a sync and an async condition yields an async
one. The evaluation core is written against coroutines; the only place a
coroutine is driven from synchronous code is run_blocking()/run_sync() at the
outermost call boundary.
"""
from __future__ import annotations

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Coroutine, TypeVar

T = TypeVar("T")

Condition = Callable[[Any], bool]
AsyncCondition = Callable[[Any], Awaitable[bool]]


def all_of(*conditions: Condition | None) -> Condition | None:
    """AND of the given sync conditions, ignoring None; None when nothing remains."""
    active = [c for c in conditions if c is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return lambda instance: all(c(instance) for c in active)


def all_of_async(outer: AsyncCondition | Condition | None, inner: AsyncCondition | Condition | None,
                 *, outer_is_async: bool, inner_is_async: bool) -> AsyncCondition:
    """AND of two conditions where either side may be async; outer is evaluated first."""
    async def combined(instance: Any) -> bool:
        if outer is not None:
            passed = await outer(instance) if outer_is_async else outer(instance)
            if not passed:
                return False
        if inner is None:
            return True
        return bool(await inner(instance) if inner_is_async else inner(instance))
    return combined


def negate(condition: Condition) -> Condition:
    return lambda instance: not condition(instance)


def negate_async(condition: AsyncCondition) -> AsyncCondition:
    async def negated(instance: Any) -> bool:
        return not await condition(instance)
    return negated


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Finish a coroutine that never suspends (every awaited step is synchronous).

    Used for rule sets without async conditions or validators so sync validation
    does not pay for an event loop.
    """
    try:
        coro.send(None)
    except StopIteration as stop:
        return stop.value
    coro.close()
    raise RuntimeError("coroutine suspended; use run_blocking() for async rule sets")


def run_blocking(awaitable: Awaitable[T]) -> T:
    """Blocking adapter for async work requested from synchronous code.

    Runs on a fresh event loop, or on a worker thread when the caller is already
    inside a running loop; the caller's context variables (ambient culture)
    carry over to the worker.
    """
    async def _await() -> T:
        return await awaitable

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_await())
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="fluent-blocking") as pool:
        context = contextvars.copy_context()
        return pool.submit(context.run, asyncio.run, _await()).result()
