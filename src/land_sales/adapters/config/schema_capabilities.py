"""
Capacidades do schema resolvidas uma única vez por processo.

Bancos antigos não têm as colunas de ator em `audit_logs`
(user_email/user_name) nem em `appointments` (created_by/updated_by).
Em vez de tentar a escrita e reagir ao erro, a presença das colunas é
detectada por introspecção no primeiro uso e pode ser fixada via settings.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from django.db import DatabaseError, connection

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SchemaCapabilities:
    audit_actor_columns: bool = True
    appointment_actor_columns: bool = True


def _table_columns(table: str) -> set[str] | None:
    try:
        with connection.cursor() as cursor:
            description = connection.introspection.get_table_description(cursor, table)
    except DatabaseError:
        logger.warning("schema.introspection_failed", table=table, exc_info=True)
        return None
    return {col.name for col in description}


def _resolve(override: str | None, table: str, columns: set[str]) -> bool:
    if override in ("true", "false"):
        return override == "true"
    found = _table_columns(table)
    if found is None:
        return True
    return columns <= found


def detect_schema_capabilities(
    audit_override: str | None = "auto",
    appointment_override: str | None = "auto",
) -> SchemaCapabilities:
    caps = SchemaCapabilities(
        audit_actor_columns=_resolve(
            (audit_override or "auto").lower(), "audit_logs", {"user_email", "user_name"}
        ),
        appointment_actor_columns=_resolve(
            (appointment_override or "auto").lower(), "appointments", {"created_by_id", "updated_by_id"}
        ),
    )
    logger.info(
        "schema.capabilities",
        audit_actor_columns=caps.audit_actor_columns,
        appointment_actor_columns=caps.appointment_actor_columns,
    )
    return caps
