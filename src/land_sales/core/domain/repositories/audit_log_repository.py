from abc import ABC, abstractmethod

from land_sales.core.domain.entities.audit_log_entity import AuditLogEntity


class AuditLogRepository(ABC):
    @abstractmethod
    def append(self, entry: AuditLogEntity) -> AuditLogEntity:
        """Insere uma nova entrada. Entradas existentes nunca são alteradas."""
        ...

    @abstractmethod
    def list_for(self, entity_type: str, entity_id: str) -> list[AuditLogEntity]:
        """Entradas do registro, da mais recente para a mais antiga."""
        ...
