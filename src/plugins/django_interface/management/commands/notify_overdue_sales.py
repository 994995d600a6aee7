from datetime import date

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from land_sales.adapters.config.composition_root import setup_di_container_from_settings


class Command(BaseCommand):
    help = "Notifica os proprietários sobre vendas pendentes com prazo vencido."

    def add_arguments(self, parser):
        parser.add_argument(
            "--today",
            type=date.fromisoformat,
            default=None,
            help="Data de referência (AAAA-MM-DD). Padrão: hoje.",
        )

    def handle(self, *args, **options):
        container = setup_di_container_from_settings(settings)
        service = container.land_sales_service()

        try:
            total = service.notify_overdue_sales(options["today"])
        except Exception as e:
            raise CommandError(f"Falha ao verificar prazos: {e}") from e

        if total:
            self.stdout.write(self.style.WARNING(f"{total} venda(s) com prazo vencido notificada(s)."))
        else:
            self.stdout.write(self.style.SUCCESS("Nenhuma venda com prazo vencido."))
