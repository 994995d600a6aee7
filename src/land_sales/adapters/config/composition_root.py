from dependency_injector import containers, providers

container = None

def setup_di_container_from_settings(settings):  # noqa: PLR0915
    """Inicializa o DI container após o Django já estar com settings carregados."""
    global container  # noqa: PLW0603
    if container is not None:
        import structlog
        structlog.get_logger().debug("DI container já inicializado.")
        return container

    # ------- IMPORTS DE INFRA E ADAPTERS -------
    import redis
    import structlog

    # Schema, change feed e notificadores
    from land_sales.adapters.config.schema_capabilities import detect_schema_capabilities
    from land_sales.adapters.message_broker.change_feed import InMemoryChangeFeed, RedisChangeFeed
    from land_sales.adapters.notifiers.registry import get_owner_notifier

    # Repositórios concretos (Django ORM)
    from land_sales.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from land_sales.adapters.repositories.audit_log_repo_impl import AuditLogRepoImpl
    from land_sales.adapters.repositories.client_repo_impl import ClientRepoImpl
    from land_sales.adapters.repositories.installment_payment_repo_impl import InstallmentPaymentRepoImpl
    from land_sales.adapters.repositories.parcel_repo_impl import ParcelRepoImpl
    from land_sales.adapters.repositories.payment_offer_repo_impl import PaymentOfferRepoImpl
    from land_sales.adapters.repositories.sale_repo_impl import SaleRepoImpl
    from land_sales.adapters.repositories.user_repo_impl import UserRepoImpl

    # ------- IMPORTS DO CORE DE LAND_SALES -------
    # Commands
    from land_sales.core.application.commands.appointment_commands import (
        ChangeAppointmentStatusCommand,
        DeleteAppointmentCommand,
        RescheduleAppointmentCommand,
        ScheduleAppointmentCommand,
    )
    from land_sales.core.application.commands.installment_commands import RecordInstallmentPaymentCommand
    from land_sales.core.application.commands.sale_commands import (
        BulkCancelSalesCommand,
        CancelSaleCommand,
        ConfirmSaleCommand,
        RecordPromisePaymentCommand,
        RemoveSaleCommand,
        ReserveParcelCommand,
        RevertSaleCommand,
        UpdatePendingSaleCommand,
    )

    # CQRS
    from land_sales.core.application.cqrs import CommandBusImpl, QueryBusImpl

    # Handlers
    from land_sales.core.application.handlers.appointment_handlers import (
        ChangeAppointmentStatusHandler,
        DeleteAppointmentHandler,
        GetAppointmentHandler,
        ListAppointmentsHandler,
        RescheduleAppointmentHandler,
        ScheduleAppointmentHandler,
    )
    from land_sales.core.application.handlers.audit_handlers import GetAuditLogsHandler
    from land_sales.core.application.handlers.installment_handlers import RecordInstallmentPaymentHandler
    from land_sales.core.application.handlers.sale_lifecycle_handlers import (
        BulkCancelSalesHandler,
        CancelSaleHandler,
        ConfirmSaleHandler,
        RecordPromisePaymentHandler,
        RemoveSaleHandler,
        ReserveParcelHandler,
        RevertSaleHandler,
        UpdatePendingSaleHandler,
    )
    from land_sales.core.application.handlers.sale_query_handlers import (
        GetInstallmentStatsHandler,
        GetPaymentPlanHandler,
        GetSaleHandler,
        ListConfirmationGroupsHandler,
        ListInstallmentsHandler,
        ListOverdueSalesHandler,
        ListSalesHandler,
    )

    # Queries
    from land_sales.core.application.queries.appointment_queries import GetAppointmentQuery, ListAppointmentsQuery
    from land_sales.core.application.queries.audit_queries import GetAuditLogsQuery
    from land_sales.core.application.queries.sale_queries import (
        GetInstallmentStatsQuery,
        GetPaymentPlanQuery,
        GetSaleQuery,
        ListConfirmationGroupsQuery,
        ListInstallmentsQuery,
        ListOverdueSalesQuery,
        ListSalesQuery,
    )

    # Serviços de aplicação
    from land_sales.core.application.services.audit_trail_service import AuditTrailRecorder
    from land_sales.core.application.services.land_sales_service import LandSalesFacadeService
    from land_sales.core.application.services.owner_alerts_service import OwnerAlertsService
    from land_sales.core.application.services.sale_plan_service import SalePlanService

    # Event Dispatcher e eventos assinados
    from land_sales.core.domain.events.events import AuditableEvent, SaleChangedEvent
    from land_sales.core.domain.services.event_dispatcher import EventDispatcher

    # ------- DECLARAÇÃO DO CONTAINER -------
    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        # Infra & integração
        logger = providers.Singleton(structlog.get_logger)
        event_dispatcher = providers.Singleton(EventDispatcher)

        # CQRS
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=event_dispatcher)
        query_bus = providers.Singleton(QueryBusImpl)

        # Capacidades do schema: detectadas uma vez, no primeiro uso
        schema_capabilities = providers.Singleton(
            detect_schema_capabilities,
            audit_override=config.schema.audit_actor_columns,
            appointment_override=config.schema.appointment_actor_columns,
        )

        # Redis e change feed
        redis_client = providers.Singleton(redis.Redis.from_url, config.redis_url)
        change_feed = providers.Selector(
            config.change_feed_backend,
            memory=providers.Singleton(InMemoryChangeFeed),
            redis=providers.Singleton(RedisChangeFeed, client=redis_client, channel=config.sales_change_channel),
        )
        owner_notifier = providers.Singleton(get_owner_notifier, kind=config.owner_notifier)

        # Implementações de Repositórios (Ports → Adapters)
        sale_repo = providers.Singleton(SaleRepoImpl)
        parcel_repo = providers.Singleton(ParcelRepoImpl)
        client_repo = providers.Singleton(ClientRepoImpl)
        user_repo = providers.Singleton(UserRepoImpl)
        payment_offer_repo = providers.Singleton(PaymentOfferRepoImpl)
        installment_repo = providers.Singleton(InstallmentPaymentRepoImpl)
        appointment_repo = providers.Singleton(AppointmentRepoImpl, capabilities=schema_capabilities.provider)
        audit_log_repo = providers.Singleton(AuditLogRepoImpl, capabilities=schema_capabilities.provider)

        # Serviços de negócio
        plan_service = providers.Singleton(SalePlanService, parcel_repo=parcel_repo, offer_repo=payment_offer_repo)
        audit_recorder = providers.Singleton(AuditTrailRecorder, repo=audit_log_repo)
        owner_alerts = providers.Singleton(OwnerAlertsService, notifier=owner_notifier)

        # Facade exposto aos comandos de gerenciamento / interface
        land_sales_service = providers.Singleton(
            LandSalesFacadeService,
            command_bus=command_bus,
            query_bus=query_bus,
            sale_repo=sale_repo,
            dispatcher=event_dispatcher,
            default_page_size=config.default_page_size,
        )

        # Handlers de transição de venda
        _transition_deps = {
            "sale_repo": sale_repo,
            "parcel_repo": parcel_repo,
            "installment_repo": installment_repo,
            "user_repo": user_repo,
            "plan_service": plan_service,
        }
        reserve_parcel_handler = providers.Factory(
            ReserveParcelHandler, client_repo=client_repo, offer_repo=payment_offer_repo, **_transition_deps
        )
        update_pending_sale_handler = providers.Factory(
            UpdatePendingSaleHandler, offer_repo=payment_offer_repo, **_transition_deps
        )
        confirm_sale_handler = providers.Factory(ConfirmSaleHandler, **_transition_deps)
        record_promise_payment_handler = providers.Factory(RecordPromisePaymentHandler, **_transition_deps)
        revert_sale_handler = providers.Factory(RevertSaleHandler, **_transition_deps)
        cancel_sale_handler = providers.Factory(CancelSaleHandler, **_transition_deps)
        bulk_cancel_sales_handler = providers.Factory(BulkCancelSalesHandler, **_transition_deps)
        remove_sale_handler = providers.Factory(RemoveSaleHandler, **_transition_deps)
        record_installment_payment_handler = providers.Factory(RecordInstallmentPaymentHandler, **_transition_deps)

        # Handlers de agendamento
        schedule_appointment_handler = providers.Factory(
            ScheduleAppointmentHandler, repo=appointment_repo, user_repo=user_repo, sale_repo=sale_repo
        )
        reschedule_appointment_handler = providers.Factory(
            RescheduleAppointmentHandler, repo=appointment_repo, user_repo=user_repo
        )
        change_appointment_status_handler = providers.Factory(
            ChangeAppointmentStatusHandler, repo=appointment_repo, user_repo=user_repo
        )
        delete_appointment_handler = providers.Factory(
            DeleteAppointmentHandler, repo=appointment_repo, user_repo=user_repo
        )

        # Handlers de Queries
        list_sales_handler = providers.Factory(ListSalesHandler, repo=sale_repo)
        get_sale_handler = providers.Factory(GetSaleHandler, repo=sale_repo)
        list_confirmation_groups_handler = providers.Factory(
            ListConfirmationGroupsHandler, repo=sale_repo, load_limit=config.confirmation_load_limit
        )
        get_payment_plan_handler = providers.Factory(GetPaymentPlanHandler, repo=sale_repo, plan_service=plan_service)
        list_installments_handler = providers.Factory(ListInstallmentsHandler, repo=installment_repo)
        get_installment_stats_handler = providers.Factory(
            GetInstallmentStatsHandler,
            sale_repo=sale_repo,
            installment_repo=installment_repo,
            plan_service=plan_service,
        )
        list_overdue_sales_handler = providers.Factory(ListOverdueSalesHandler, repo=sale_repo)
        get_audit_logs_handler = providers.Factory(GetAuditLogsHandler, recorder=audit_recorder)
        get_appointment_handler = providers.Factory(GetAppointmentHandler, repo=appointment_repo)
        list_appointments_handler = providers.Factory(ListAppointmentsHandler, repo=appointment_repo)

        def init(self):
            # Assinantes pós-commit
            dispatcher = self.event_dispatcher()
            dispatcher.subscribe(AuditableEvent, self.audit_recorder().on_event)
            dispatcher.subscribe(SaleChangedEvent, self.change_feed().on_event)
            for event_type, handler in self.owner_alerts().subscriptions():
                dispatcher.subscribe(event_type, handler)

            # Registrar comandos no CommandBus
            bus = self.command_bus()

            # Ciclo de vida da venda
            bus.register(ReserveParcelCommand, self.reserve_parcel_handler())
            bus.register(UpdatePendingSaleCommand, self.update_pending_sale_handler())
            bus.register(ConfirmSaleCommand, self.confirm_sale_handler())
            bus.register(RecordPromisePaymentCommand, self.record_promise_payment_handler())
            bus.register(RevertSaleCommand, self.revert_sale_handler())
            bus.register(CancelSaleCommand, self.cancel_sale_handler())
            bus.register(BulkCancelSalesCommand, self.bulk_cancel_sales_handler())
            bus.register(RemoveSaleCommand, self.remove_sale_handler())
            bus.register(RecordInstallmentPaymentCommand, self.record_installment_payment_handler())

            # Agendamentos
            bus.register(ScheduleAppointmentCommand, self.schedule_appointment_handler())
            bus.register(RescheduleAppointmentCommand, self.reschedule_appointment_handler())
            bus.register(ChangeAppointmentStatusCommand, self.change_appointment_status_handler())
            bus.register(DeleteAppointmentCommand, self.delete_appointment_handler())

            # Registrar queries no QueryBus
            qb = self.query_bus()
            qb.register(ListSalesQuery, self.list_sales_handler())
            qb.register(GetSaleQuery, self.get_sale_handler())
            qb.register(ListConfirmationGroupsQuery, self.list_confirmation_groups_handler())
            qb.register(GetPaymentPlanQuery, self.get_payment_plan_handler())
            qb.register(ListInstallmentsQuery, self.list_installments_handler())
            qb.register(GetInstallmentStatsQuery, self.get_installment_stats_handler())
            qb.register(ListOverdueSalesQuery, self.list_overdue_sales_handler())
            qb.register(GetAuditLogsQuery, self.get_audit_logs_handler())
            qb.register(GetAppointmentQuery, self.get_appointment_handler())
            qb.register(ListAppointmentsQuery, self.list_appointments_handler())

    # ------- INSTANCIAÇÃO E CONFIG -------
    container = Container()
    container.config.redis_url.from_value(settings.REDIS_URL)
    container.config.change_feed_backend.from_value(settings.CHANGE_FEED_BACKEND)
    container.config.sales_change_channel.from_value(settings.SALES_CHANGE_CHANNEL)
    container.config.owner_notifier.from_value(settings.OWNER_NOTIFIER)
    container.config.confirmation_load_limit.from_value(settings.CONFIRMATION_LOAD_LIMIT)
    container.config.default_page_size.from_value(settings.DEFAULT_PAGE_SIZE)
    container.config.schema.audit_actor_columns.from_value(settings.SCHEMA_AUDIT_USER_COLUMNS)
    container.config.schema.appointment_actor_columns.from_value(settings.SCHEMA_APPOINTMENT_USER_COLUMNS)

    # Inicializa o CommandBus com todos os handlers
    Container.init(container)
    return container
