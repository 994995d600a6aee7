"""
Change feed da tabela de vendas.

Cada mutação confirmada publica `{"sale_id", "kind"}`; os assinantes só
usam a mensagem como gatilho para recarregar. Entrega at-least-once,
sem garantia de ordem.
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import asdict, dataclass

import structlog
from redis import Redis

from land_sales.adapters.observability.metrics import CHANGE_FEED_PUBLISHED
from land_sales.core.domain.events.events import SaleChangedEvent

log = structlog.get_logger(__name__)

INSERT, UPDATE, DELETE = "INSERT", "UPDATE", "DELETE"


@dataclass(frozen=True)
class SaleChange:
    sale_id: str
    kind: str  # INSERT | UPDATE | DELETE

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> SaleChange:
        data = json.loads(raw)
        return cls(sale_id=str(data["sale_id"]), kind=str(data["kind"]))


class SaleChangeFeed(ABC):
    backend = "abstract"

    @abstractmethod
    def publish(self, change: SaleChange) -> None:
        ...

    # ------------------------------------------------------------------
    def on_event(self, event: SaleChangedEvent) -> None:
        """Assinante do EventDispatcher para SaleChangedEvent."""
        change = SaleChange(sale_id=str(event.sale_id), kind=event.change)
        try:
            self.publish(change)
        except Exception as exc:
            CHANGE_FEED_PUBLISHED.labels(self.backend, "failed").inc()
            log.error(
                "sales_feed.publish_failed",
                backend=self.backend,
                sale_id=change.sale_id,
                error=str(exc),
                exc_info=True,
            )
            return
        CHANGE_FEED_PUBLISHED.labels(self.backend, "ok").inc()
        log.debug("sales_feed.published", backend=self.backend, sale_id=change.sale_id, kind=change.kind)


class InMemoryChangeFeed(SaleChangeFeed):
    """Entrega síncrona para assinantes do mesmo processo."""
    backend = "memory"

    def __init__(self) -> None:
        self._subscribers: list[Callable[[SaleChange], None]] = []

    def subscribe(self, callback: Callable[[SaleChange], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, change: SaleChange) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception as exc:
                log.error("sales_feed.subscriber_error", sale_id=change.sale_id, error=str(exc), exc_info=True)


class RedisChangeFeed(SaleChangeFeed):
    """Publica no canal pub/sub do Redis."""
    backend = "redis"

    def __init__(self, client: Redis, channel: str = "sales.changes") -> None:
        self.client = client
        self.channel = channel

    def publish(self, change: SaleChange) -> None:
        self.client.publish(self.channel, change.to_json())

    def listen(self, callback: Callable[[SaleChange], None]) -> None:
        """Bloqueia consumindo o canal; usado por processos assinantes."""
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(self.channel)
        log.info("sales_feed.listening", channel=self.channel)
        try:
            for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                callback(SaleChange.from_json(message["data"]))
        finally:
            pubsub.close()
