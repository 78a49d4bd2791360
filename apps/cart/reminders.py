"""
Barrido de recordatorios de carrito abandonado.

Lo dispara un cron (endpoint send-reminders o el comando
send_abandoned_cart_reminders). Cada paso se mide desde updated_at, que se
actualiza tanto con la actividad del cliente como al enviar cada recordatorio.

Un envío fallido deja el registro igual para reintentarlo en el siguiente
barrido. Si el proceso muere entre el envío y el guardado, el recordatorio
puede repetirse: se acepta entrega al-menos-una-vez.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from apps.core.security import redact_email

from .exceptions import DispatchError, StoreConfigurationError, TransientStoreError
from .status import REMINDER_STEPS, next_status, pending_step, validate_transition

logger = logging.getLogger(__name__)

DEFAULT_DELAYS_HOURS = (1, 24, 48, 72)


def reminder_delays_from_settings():
    hours = getattr(settings, 'ABANDONED_CART_REMINDER_DELAYS_HOURS', None) or DEFAULT_DELAYS_HOURS
    delays = [timedelta(hours=float(h)) for h in hours]
    if len(delays) != REMINDER_STEPS:
        raise ImproperlyConfigured(
            f'ABANDONED_CART_REMINDER_DELAYS_HOURS necesita {REMINDER_STEPS} valores, '
            f'recibió {len(delays)}.'
        )
    return delays


@dataclass
class SweepResult:
    seen: int = 0
    due: int = 0
    advanced: int = 0
    failed: int = 0
    skipped: int = 0
    due_emails: list = field(default_factory=list)

    def as_dict(self):
        return {
            'activeCartsCount': self.seen,
            'due': self.due,
            'advanced': self.advanced,
            'failed': self.failed,
            'skipped': self.skipped,
        }


class ReminderSweep:
    """
    send_reminder(step, record) -> bool es la capacidad de envío
    (por defecto apps.core.emails.notify_cart_abandoned).
    """

    def __init__(self, store, send_reminder=None, delays=None, clock=timezone.now):
        if send_reminder is None:
            from apps.core.emails import notify_cart_abandoned
            send_reminder = notify_cart_abandoned
        self.store = store
        self.send_reminder = send_reminder
        self.delays = list(delays) if delays is not None else reminder_delays_from_settings()
        self.clock = clock

    def due_step(self, record, now):
        step = pending_step(record.status)
        if step is None:
            return None
        if now - record.updated_at >= self.delays[step - 1]:
            return step
        return None

    def run(self, dry_run=False):
        result = SweepResult()
        now = self.clock()
        records = self.store.list_active()
        result.seen = len(records)
        logger.info("Barrido de carritos abandonados: %s activos", result.seen)

        for record in records:
            step = self.due_step(record, now)
            if step is None:
                continue
            result.due += 1
            result.due_emails.append(record.email)
            if dry_run:
                continue
            try:
                outcome = self._process(record, step)
            except StoreConfigurationError:
                raise
            except (TransientStoreError, DispatchError) as exc:
                result.failed += 1
                logger.warning(
                    "Recordatorio %s para %s no procesado: %s",
                    step, redact_email(record.email), exc,
                )
            except Exception:
                result.failed += 1
                logger.exception(
                    "Error inesperado con el recordatorio %s para %s",
                    step, redact_email(record.email),
                )
            else:
                if outcome:
                    result.advanced += 1
                else:
                    result.skipped += 1

        logger.info(
            "Barrido terminado: due=%s advanced=%s failed=%s skipped=%s",
            result.due, result.advanced, result.failed, result.skipped,
        )
        return result

    def _process(self, record, step):
        # Releer: el cliente pudo volver o comprar después del SCAN
        current = self.store.get(record.email)
        if (current is None or current.status != record.status
                or current.updated_at != record.updated_at):
            logger.info(
                "Carrito de %s cambió durante el barrido; se omite",
                redact_email(record.email),
            )
            return False

        if not self.send_reminder(step, current):
            raise DispatchError(f'envío del recordatorio {step} rechazado')

        target = validate_transition(current.status, next_status(current.status))
        now = self.clock()
        self.store.upsert(current.copy(status=target, updated_at=max(now, current.updated_at)))
        logger.info(
            "Recordatorio %s enviado a %s; estado %s",
            step, redact_email(current.email), target,
        )
        return True
