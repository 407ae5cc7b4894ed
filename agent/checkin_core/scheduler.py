"""
Jittered sleep between check-ins.

The jitter does not need to be cryptographically secure; a seeded
random.Random gives reproducible delays in tests.
"""

import random
import time
from datetime import timedelta

from .constants import MAX_DURATION

_rng = random.Random()


def next_delay(wait_time, skew, rng=None):
    """wait_time plus a random 0..skew-1 milliseconds, or wait_time when skew <= 0.

    The result never exceeds MAX_DURATION, however large the skew.
    """
    if skew > 0:
        rng = rng or _rng
        max_ms = MAX_DURATION // timedelta(milliseconds=1)
        jitter = timedelta(milliseconds=min(rng.randrange(skew), max_ms))
        return min(wait_time + jitter, MAX_DURATION)
    return min(wait_time, MAX_DURATION)


def sleep_for(delay, sleeper=time.sleep):
    """Block the (single) check-in thread for delay (timedelta)."""
    sleeper(max(min(delay, MAX_DURATION).total_seconds(), 0.0))
