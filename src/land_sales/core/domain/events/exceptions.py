class LandSalesError(Exception):
    """Classe base para todos os erros de domínio."""
    pass


# ───────────────────────────────────────────────
# Validação (rejeitado antes de qualquer mutação)
# ───────────────────────────────────────────────
class SaleValidationError(LandSalesError):
    """
    Campo obrigatório ausente ou valor inválido.
    `field` identifica o campo responsável para que o chamador possa destacá-lo.
    """
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InvalidPaymentPlanError(SaleValidationError):
    """Configuração de oferta que gera meses ou mensalidade ≤ 0."""
    pass


class InvalidTransitionError(LandSalesError):
    """Transição inexistente na máquina de estados a partir do status atual."""
    def __init__(self, transition: str, current_status: str) -> None:
        super().__init__(f"transição '{transition}' não permitida a partir de '{current_status}'")
        self.transition = transition
        self.current_status = current_status


class PermissionDeniedError(LandSalesError):
    """Operação restrita a proprietários (role=owner)."""
    pass


# ───────────────────────────────────────────────
# Registro inexistente
# ───────────────────────────────────────────────
class NotFoundError(LandSalesError):
    pass


class SaleNotFoundError(NotFoundError):
    pass


class ParcelNotFoundError(NotFoundError):
    pass


class PaymentOfferNotFoundError(NotFoundError):
    pass


class AppointmentNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class ClientNotFoundError(NotFoundError):
    pass


# ───────────────────────────────────────────────
# Conflito (atualização condicional afetou 0 linhas)
# ───────────────────────────────────────────────
class ConflictError(LandSalesError):
    """
    O registro mudou desde a leitura. O chamador deve recarregar os dados,
    não repetir a operação às cegas.
    """
    pass


class SaleConflictError(ConflictError):
    pass


class ParcelConflictError(ConflictError):
    pass


class AppointmentConflictError(ConflictError):
    pass


# ───────────────────────────────────────────────
# Infraestrutura durante uma transição
# ───────────────────────────────────────────────
class TransitionStepError(LandSalesError):
    """
    Falha de infraestrutura em um passo da transição. A transação inteira
    foi desfeita; `step` indica qual passo falhou.
    """
    def __init__(self, transition: str, step: str, cause: Exception) -> None:
        super().__init__(f"{transition} falhou no passo '{step}': {cause}")
        self.transition = transition
        self.step = step
        self.cause = cause


# ───────────────────────────────────────────────
# Notificações (best-effort)
# ───────────────────────────────────────────────
class NotificationError(Exception):
    """Classe base para todas as exceções de notificação."""
    pass


class PermanentNotificationError(NotificationError):
    """
    Erro permanente que não deve ser retentado.
    Exemplos:
    - 4xx: URL de webhook inválida, token recusado.
    """
    pass


class TemporaryNotificationError(NotificationError):
    """
    Erro temporário que pode ser resolvido com uma nova tentativa.
    Exemplos:
    - 5xx: serviço de destino indisponível.
    - Falhas de rede, timeouts.
    """
    pass
