"""Server-Sent Events stream.

One named ``headers`` event carrying the snapshot, then an unnamed
``Heartbeat #<n>`` record immediately and every interval until the peer goes
away. There is no closing event.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from sensillum.core.server_info import ServerInfo
from sensillum.sessions.websocket import heartbeat_message

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def format_event(data: str, event: str | None = None) -> str:
    """Encode one SSE record; multi-line data is split over data fields."""
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


async def sse_events(info: ServerInfo, interval: float) -> AsyncIterator[str]:
    """Yield the SSE records of one session, forever."""
    loop = asyncio.get_running_loop()
    logger.info(f"SSE client connected from {info.client_addr}")
    try:
        yield format_event(info.to_json(), event="headers")

        count = 0
        next_tick = loop.time()
        while True:
            await asyncio.sleep(max(next_tick - loop.time(), 0))
            yield format_event(heartbeat_message(count))
            count += 1
            next_tick += interval
    finally:
        logger.info(f"SSE stream closed: {info.client_addr}")
