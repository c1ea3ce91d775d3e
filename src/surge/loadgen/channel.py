from __future__ import annotations

import asyncio
from typing import AsyncIterator

from surge.metrics import Finished, Message


class ResultChannel:
    """Ordered many-producer, single-consumer path from workers to the collector.

    With ``maxsize`` 0 the channel is unbounded and ``send`` never blocks. A
    positive ``maxsize`` makes ``send`` wait until the consumer catches up;
    messages are never dropped. Iteration ends once every producer has sent
    its ``Finished`` message.
    """

    def __init__(self, producers: int, maxsize: int = 0) -> None:
        if producers < 1:
            msg = f"A channel needs at least one producer, got {producers}"
            raise ValueError(msg)
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize)
        self._open_producers = producers
        self._finished_sent = 0
        self._producers = producers

    @property
    def bounded(self) -> bool:
        return self._queue.maxsize > 0

    @property
    def closed(self) -> bool:
        return self._open_producers == 0

    @property
    def open_producers(self) -> int:
        return self._open_producers

    def pending(self) -> int:
        return self._queue.qsize()

    async def send(self, message: Message) -> None:
        if self._finished_sent >= self._producers:
            msg = "Cannot send on a channel whose producers have all finished"
            raise RuntimeError(msg)
        if isinstance(message, Finished):
            self._finished_sent += 1
        await self._queue.put(message)

    def __aiter__(self) -> AsyncIterator[Message]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[Message]:
        while self._open_producers > 0:
            message = await self._queue.get()
            if isinstance(message, Finished):
                self._open_producers -= 1
            yield message
