import time
from typing import Any, Callable

from ape.logging import logger

from rollout.config import ConfirmationPolicy
from rollout.errors import ConfirmationTimeout


def wait_for_receipt(
    client,
    tx_hash: str,
    policy: ConfirmationPolicy,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """
    Polls `client` until the receipt of `tx_hash` is available, then waits
    for the settle delay. The poll interval grows by `policy.backoff` up to
    `policy.max_interval`. Raises ConfirmationTimeout once `policy.timeout`
    has elapsed; a timeout of None polls forever.
    """
    started = clock()
    interval = policy.poll_interval
    while True:
        receipt = client.get_receipt(tx_hash)
        if receipt is not None:
            break
        elapsed = clock() - started
        if policy.timeout is not None and elapsed >= policy.timeout:
            raise ConfirmationTimeout(tx_hash=tx_hash, timeout=policy.timeout)
        logger.debug(f"Waiting for {tx_hash} ({elapsed:.0f}s elapsed)")
        if policy.timeout is not None:
            interval = min(interval, max(policy.timeout - elapsed, 0))
        sleep(interval)
        interval = min(interval * policy.backoff, policy.max_interval)

    if policy.settle_delay:
        sleep(policy.settle_delay)
    return receipt
