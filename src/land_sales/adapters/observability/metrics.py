import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from land_sales.core.domain.events.exceptions import ConflictError, LandSalesError

registry = CollectorRegistry()

SALE_TRANSITIONS = Counter(
    "sale_transitions_total",
    "Transicoes de venda por resultado",
    ["transition", "outcome"],
    registry=registry,
)

SALE_TRANSITION_DURATION = Histogram(
    "sale_transition_duration_seconds",
    "Duracao das transicoes de venda",
    ["transition"],
    registry=registry,
)

OWNER_NOTIFICATIONS = Counter(
    "owner_notifications_total",
    "Notificacoes para proprietarios",
    ["outcome"],
    registry=registry,
)

CHANGE_FEED_PUBLISHED = Counter(
    "sales_change_feed_published_total",
    "Mensagens publicadas no change feed de vendas",
    ["backend", "outcome"],
    registry=registry,
)


@contextmanager
def track_transition(transition: str) -> Iterator[None]:
    """Conta a transição como ok / conflict / rejected / error e mede a duração."""
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except ConflictError:
        outcome = "conflict"
        raise
    except LandSalesError:
        outcome = "rejected"
        raise
    except Exception:
        outcome = "error"
        raise
    finally:
        SALE_TRANSITIONS.labels(transition, outcome).inc()
        SALE_TRANSITION_DURATION.labels(transition).observe(time.perf_counter() - start)


def export() -> tuple[bytes, str]:
    """Payload no formato de exposição do Prometheus e seu content-type."""
    return generate_latest(registry), CONTENT_TYPE_LATEST
