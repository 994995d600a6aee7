from land_sales.core.application.cqrs import QueryHandler
from land_sales.core.application.services.audit_trail_service import AuditTrailRecorder
from land_sales.core.domain.entities.audit_log_entity import AuditLogEntity

from ..queries.audit_queries import GetAuditLogsQuery


class GetAuditLogsHandler(QueryHandler[GetAuditLogsQuery, list[AuditLogEntity]]):
    """Histórico de uma entidade, mais recente primeiro."""
    def __init__(self, recorder: AuditTrailRecorder):
        self.recorder = recorder

    def handle(self, q: GetAuditLogsQuery) -> list[AuditLogEntity]:
        return self.recorder.get_audit_logs(q.entity_type, q.entity_id)
