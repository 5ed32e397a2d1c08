"""SSH daemon readiness polling."""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def wait_for_sshd(host, port=22, timeout=300, interval=5, connect_timeout=5):
    """Poll the SSH port until it accepts a TCP connection or timeout.

    Only reachability is checked; no credentials are needed. *timeout* is
    wall-clock time, connection attempts included.

    Returns:
        True once the port accepted a connection, False on timeout.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=min(connect_timeout, remaining)
            )
        except (OSError, TimeoutError) as e:
            logger.debug(f"sshd on {host}:{port} not ready: {str(e) or type(e).__name__}")
            await asyncio.sleep(max(0, min(interval, deadline - loop.time())))
            continue
        writer.close()
        await writer.wait_closed()
        return True

    logger.error(f"Timeout after {timeout}s waiting for SSH connectivity to {host}:{port}")
    return False
