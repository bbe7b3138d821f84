import asyncio
from collections.abc import Awaitable, Iterable
import contextlib
import signal


async def serve_until_signal(
    *,
    stop_coros: Iterable[Awaitable] = (),
    on_stop: Iterable[asyncio.Future | None] = (),
) -> None:
    """
    Wait until SIGINT/SIGTERM or any task in on_stop finishes, then:
      1) await all stop coroutines (e.g., runner.stop())
      2) cancel & await the task handles that are still pending
    """
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    handles = [h for h in on_stop if h is not None]

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    waiter = asyncio.ensure_future(stop_event.wait())
    try:
        live = [h for h in handles if not h.done()]
        await asyncio.wait([waiter, *live], return_when=asyncio.FIRST_COMPLETED)

        if stop_coros:
            await asyncio.gather(*stop_coros, return_exceptions=True)
        await asyncio.sleep(0)

        pending = [h for h in handles if not h.done()]
        for h in pending:
            h.cancel()
        if pending:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*pending, return_exceptions=True)
    finally:
        waiter.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
