"""Fila inbound particionada por conversa.

webhook aceita → enfileira → responde 200 → workers despacham.

Cada envelope vai para a partição `crc32(shard_key) % workers`; cada
partição tem um único worker, então mensagens da mesma conversa são
despachadas em ordem de chegada enquanto conversas diferentes correm em
paralelo. A chave de partição de um atendente em sessão é o endereço do
cliente par, serializando os dois lados da conversa.
"""

from __future__ import annotations

import asyncio
import logging
import zlib
from collections.abc import Awaitable, Callable

from zapdesk.domain.models import InboundEnvelope
from zapdesk.observability.logging import get_logger, mask
from zapdesk.observability.middleware import bind_correlation_id

logger: logging.Logger = get_logger(__name__)

EnvelopeHandler = Callable[[InboundEnvelope], Awaitable[object]]
ShardKeyFn = Callable[[InboundEnvelope], str]


class QueueFullError(Exception):
    """Partição cheia; a entrega deve ser recusada para reentrega."""


class ShardedDispatchQueue:
    """Pool de workers asyncio com uma fila por partição."""

    def __init__(
        self,
        handler: EnvelopeHandler,
        shard_key: ShardKeyFn,
        workers: int = 4,
        max_size: int = 1000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers deve ser >= 1")
        self._handler = handler
        self._shard_key = shard_key
        self._workers = workers
        self._max_size = max_size
        self._queues: list[asyncio.Queue[InboundEnvelope]] = []
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def shard_for(self, envelope: InboundEnvelope) -> int:
        key = self._shard_key(envelope)
        return zlib.crc32(key.encode("utf-8")) % self._workers

    async def start(self) -> None:
        if self._tasks:
            return
        self._queues = [asyncio.Queue(maxsize=self._max_size) for _ in range(self._workers)]
        self._tasks = [
            asyncio.create_task(self._worker(index, queue), name=f"dispatch-worker-{index}")
            for index, queue in enumerate(self._queues)
        ]
        logger.info("dispatch_workers_started", extra={"workers": self._workers})

    def submit(self, envelope: InboundEnvelope) -> int:
        """Enfileira sem bloquear; retorna a partição escolhida."""
        if not self._tasks:
            raise RuntimeError("fila inbound não iniciada")
        shard = self.shard_for(envelope)
        try:
            self._queues[shard].put_nowait(envelope)
        except asyncio.QueueFull as e:
            logger.warning(
                "dispatch_queue_full",
                extra={"shard": shard, "message_id": mask(envelope.message_id)},
            )
            raise QueueFullError(f"partição {shard} cheia") from e
        return shard

    async def drain(self) -> None:
        """Aguarda todas as partições esvaziarem."""
        for queue in self._queues:
            await queue.join()

    async def stop(self) -> None:
        """Drena o que já foi aceito e encerra os workers."""
        if not self._tasks:
            return
        await self.drain()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queues = []
        logger.info("dispatch_workers_stopped")

    async def _worker(self, index: int, queue: asyncio.Queue[InboundEnvelope]) -> None:
        while True:
            envelope = await queue.get()
            try:
                with bind_correlation_id(envelope.message_id or None):
                    await self._handler(envelope)
            except Exception as e:  # noqa: BLE001
                # Um envelope com erro não derruba a partição.
                logger.exception(
                    "dispatch_failed",
                    extra={
                        "shard": index,
                        "message_id": mask(envelope.message_id),
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                queue.task_done()
