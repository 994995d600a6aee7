from dataclasses import dataclass


@dataclass(frozen=True)
class GetAuditLogsQuery:
    entity_type: str
    entity_id: str
