"""Serialization of transaction processing per sender."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class TransactionGate:
    """
    Critical sections of the transaction pipeline.

    ``transaction(sender)`` holds the sender's lock from the nonce check until
    the transaction is committed or rejected, so two submissions of the same
    sender can never read the same nonce. Other senders proceed concurrently.

    ``exclusive()`` waits for every in-flight transaction to finish and keeps
    new ones out until it exits. Snapshot export and load run under it.
    """

    def __init__(self) -> None:
        # sender -> (lock, number of holders and waiters)
        self._sender_locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._condition = asyncio.Condition()
        self._in_flight = 0
        self._exclusive = False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def tracked_senders(self) -> int:
        return len(self._sender_locks)

    def _claim_lock(self, sender: str) -> asyncio.Lock:
        lock, users = self._sender_locks.get(sender) or (asyncio.Lock(), 0)
        self._sender_locks[sender] = (lock, users + 1)
        return lock

    def _release_claim(self, sender: str) -> None:
        lock, users = self._sender_locks[sender]
        if users == 1:
            del self._sender_locks[sender]
        else:
            self._sender_locks[sender] = (lock, users - 1)

    @asynccontextmanager
    async def transaction(self, sender: str) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._exclusive)
            self._in_flight += 1

        lock = self._claim_lock(sender)
        try:
            async with lock:
                yield
        finally:
            self._release_claim(sender)
            async with self._condition:
                self._in_flight -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._exclusive)
            self._exclusive = True
            try:
                await self._condition.wait_for(lambda: self._in_flight == 0)
            except BaseException:
                self._exclusive = False
                self._condition.notify_all()
                raise

        try:
            yield
        finally:
            async with self._condition:
                self._exclusive = False
                self._condition.notify_all()
