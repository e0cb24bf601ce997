"""
Stream normalization helpers.

The on-device runtime reports the whole text generated so far on every tick
("Hi", "Hi there", "Hi there!"). Callers always want deltas
("Hi", " there", "!").
"""

from typing import AsyncGenerator, AsyncIterable


async def cumulative_to_deltas(snapshots: AsyncIterable[str]) -> AsyncGenerator[str, None]:
    """
    Convert a cumulative-prefix stream into a delta stream.

    ``previous_length`` is a high-water mark: a snapshot that is not longer
    than what has already been emitted (a repeat, or a stale snapshot that
    arrived late) yields nothing and does not move the mark, so the deltas
    always concatenate to the longest snapshot seen.
    """
    previous_length = 0
    async for snapshot in snapshots:
        chunk = str(snapshot)
        if len(chunk) <= previous_length:
            continue
        delta = chunk[previous_length:]
        previous_length = len(chunk)
        yield delta
