from collections.abc import Callable

import structlog

from land_sales.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

class EventDispatcher:
    """
    Dispatcher de eventos de domínio.

    Um handler inscrito em uma classe base recebe também os eventos das
    subclasses (ex.: `AuditableEvent` recebe `SaleConfirmedEvent`).
    Falhas de handlers são registradas e nunca propagam: os efeitos
    colaterais pós-commit são best-effort.
    """
    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[Callable[[DomainEvent], None]]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> None:
        self._subs.setdefault(event_type, []).append(handler)
        handler_name = getattr(handler, '__name__', handler.__class__.__name__)
        logger.debug(
            "event.subscribed",
            event_type=event_type.__name__,
            handler_name=handler_name,
        )

    def handlers_for(self, event: DomainEvent) -> list[Callable[[DomainEvent], None]]:
        handlers: list[Callable[[DomainEvent], None]] = []
        for klass in type(event).__mro__:
            handlers.extend(self._subs.get(klass, []))
        return handlers

    def dispatch(self, event: DomainEvent) -> None:
        handlers = self.handlers_for(event)
        logger.info(
            "event.dispatch",
            event_name=type(event).__name__,
            listeners=len(handlers),
        )
        for h in handlers:
            try:
                h(event)
            except Exception as e:
                handler_name = getattr(h, '__name__', h.__class__.__name__)
                logger.error(
                    "event.handler_error",
                    event_name=type(event).__name__,
                    handler_name=handler_name,
                    error=str(e),
                    exc_info=True,
                )
