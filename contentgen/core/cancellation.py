"""Cancellation tokens and single-call execution under a deadline.

Architectural role:
    Adapters issue exactly one network call per invocation. `run_cancellable`
    runs that call as a task and races it against the per-call timeout and an
    optional `CancellationToken`. Whichever loses is cancelled and awaited, so
    no background work outlives the adapter call.

Concurrency model:
    Single event loop. A token may be shared by several sibling calls (one
    orchestrator invocation); cancelling it stops all of them. A timeout only
    ever cancels its own call.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable


class CallTimedOut(Exception):
    """The wrapped call did not finish within its budget."""


class CallCancelled(Exception):
    """The wrapped call was stopped through its cancellation token."""


class CancellationToken:
    """Cooperative cancellation signal passed into adapter calls."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def run_cancellable(
    call: Awaitable[Any],
    timeout_seconds: float,
    token: CancellationToken | None = None,
) -> Any:
    """Await `call` unless the timeout expires or `token` is cancelled first.

    Args:
        call: The single outbound network call (coroutine or future).
        timeout_seconds: Budget for the call.
        token: Optional cancellation token.

    Returns:
        Whatever `call` returns.

    Raises:
        CallTimedOut: The budget expired; `call` has been cancelled.
        CallCancelled: The token fired (before or during the call); `call` has
            been cancelled.
        Exception: Any exception raised by `call` itself is propagated.
    """
    task = asyncio.ensure_future(call)

    if token is not None and token.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise CallCancelled()

    waiters = {task}
    cancel_waiter = None
    if token is not None:
        cancel_waiter = asyncio.ensure_future(token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters,
            timeout=timeout_seconds,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        pending = [w for w in waiters if not w.done()]
        for waiter in pending:
            waiter.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if task in done:
        return task.result()

    if cancel_waiter is not None and cancel_waiter in done:
        raise CallCancelled()

    raise CallTimedOut()
