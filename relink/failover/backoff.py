import random


def reconnect_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float = 1.0,
    rng: random.Random | None = None,
) -> float:
    """
    Exponential backoff for the ``attempt``-th retry on the same node:
    ``min(base_delay * 2 ** attempt, max_delay)`` plus uniform jitter in
    ``[0, jitter]``.
    """
    if rng is None:
        rng = random

    exponential = min(base_delay * (2 ** max(attempt, 0)), max_delay)
    return exponential + rng.uniform(0, jitter)
