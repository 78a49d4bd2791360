"""
Envía los recordatorios de carrito abandonado que ya vencieron.

Uso:
  python manage.py send_abandoned_cart_reminders
  python manage.py send_abandoned_cart_reminders --dry-run
"""
from django.core.management.base import BaseCommand, CommandError

from apps.cart.exceptions import StoreConfigurationError
from apps.cart.reminders import ReminderSweep
from apps.cart.store import get_store
from apps.core.security import redact_email


class Command(BaseCommand):
    help = 'Envía recordatorios de carrito abandonado (pasos 1 a 4) a los carritos vencidos.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostrar qué carritos recibirían recordatorio sin enviar correos.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        try:
            result = ReminderSweep(get_store()).run(dry_run=dry_run)
        except StoreConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(f'Carritos activos: {result.seen}')
        if not result.due:
            self.stdout.write(self.style.WARNING('No hay recordatorios pendientes.'))
            return

        if dry_run:
            for email in result.due_emails:
                self.stdout.write(f'  - {redact_email(email)}')
            self.stdout.write(self.style.WARNING(
                f'Dry run: {result.due} recordatorio(s) pendientes, no se enviaron correos.'
            ))
            return

        if result.failed:
            self.stderr.write(self.style.ERROR(f'Fallaron {result.failed} recordatorio(s).'))
        if result.skipped:
            self.stdout.write(f'Omitidos por cambios durante el barrido: {result.skipped}')
        self.stdout.write(self.style.SUCCESS(f'Se enviaron {result.advanced} recordatorio(s).'))
