"""
Ciclo de vida de un carrito abandonado.

El checkout reporta el contenido del carrito cada vez que el cliente escribe
su email. Si el último reporte es reciente (ACTIVITY_WINDOW) se trata como la
misma sesión: se actualiza el contenido y el estado no cambia. Si no hay
registro, o el último reporte es viejo, se abre un ciclo nuevo en pending_1.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from apps.core.security import redact_email

from .exceptions import CartValidationError
from .records import CartActivityRecord, CartItem, normalize_email
from .serializers import ActivityReportSerializer
from .status import CartStatus, is_terminal, validate_transition

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW = timedelta(minutes=5)


def _to_decimal(value):
    return None if value is None else Decimal(str(value))


def activity_window_from_settings():
    minutes = getattr(settings, 'ABANDONED_CART_ACTIVITY_WINDOW_MINUTES', None)
    if minutes is None:
        return ACTIVITY_WINDOW
    return timedelta(minutes=minutes)


@dataclass
class ActivityResult:
    record: CartActivityRecord
    created: bool


class CartActivityController:

    def __init__(self, store, activity_window=None, reset_stale_sequence=None,
                 clock=timezone.now):
        self.store = store
        if activity_window is None:
            activity_window = activity_window_from_settings()
        self.activity_window = activity_window
        if reset_stale_sequence is None:
            reset_stale_sequence = getattr(
                settings, 'ABANDONED_CART_RESET_STALE_SEQUENCE', True
            )
        self.reset_stale_sequence = reset_stale_sequence
        self.clock = clock

    def validate(self, email, items, locale, currency=None, total_value=None):
        payload = {'email': email, 'cartItems': items, 'locale': locale}
        if currency is not None:
            payload['currency'] = currency
        if total_value is not None:
            payload['totalValueAtAbandonment'] = total_value
        serializer = ActivityReportSerializer(data=payload)
        if not serializer.is_valid():
            raise CartValidationError(serializer.errors)
        return serializer.validated_data

    def record_activity(self, email, items, locale, currency=None, total_value=None):
        data = self.validate(email, items, locale, currency, total_value)
        email = normalize_email(data['email'])
        now = self.clock()

        contents = {
            'items': [CartItem.from_dict(item) for item in data['cartItems']],
            'locale': data['locale'],
            'currency': data.get('currency'),
            'total_value': _to_decimal(data.get('totalValueAtAbandonment')),
        }

        existing = self.store.get(email)
        if existing is not None and now - existing.updated_at < self.activity_window:
            record = existing.copy(updated_at=max(now, existing.updated_at), **contents)
            created = False
            logger.info(
                "Actividad reciente para %s: se actualiza el carrito (estado %s)",
                redact_email(email), record.status,
            )
        elif (existing is not None and not self.reset_stale_sequence
              and not is_terminal(existing.status)):
            record = existing.copy(updated_at=max(now, existing.updated_at), **contents)
            created = False
            logger.info(
                "Sesión vencida para %s: se conserva la secuencia en %s",
                redact_email(email), record.status,
            )
        else:
            record = CartActivityRecord(
                email=email,
                status=CartStatus.PENDING_1,
                logged_at=now,
                updated_at=now,
                **contents,
            )
            created = True
            if existing is not None:
                logger.info(
                    "Sesión vencida para %s: se reinicia la secuencia (antes %s)",
                    redact_email(email), existing.status,
                )
            else:
                logger.info("Nuevo carrito abandonado para %s", redact_email(email))

        self.store.upsert(record)
        return ActivityResult(record=record, created=created)

    def get_active(self, email):
        record = self.store.get(email)
        if record is None or is_terminal(record.status):
            return None
        return record

    def mark_converted(self, email):
        """
        El cliente compró. Devuelve el registro o None si no existe.
        Un registro ya terminal (completed o converted) se devuelve sin cambios.
        """
        record = self.store.get(email)
        if record is None:
            return None
        if is_terminal(record.status):
            return record
        validate_transition(record.status, CartStatus.CONVERTED)
        record = record.copy(status=CartStatus.CONVERTED, updated_at=self.clock())
        self.store.upsert(record)
        logger.info("Carrito de %s marcado como convertido", redact_email(email))
        return record

    def forget(self, email):
        self.store.delete(email)
        logger.info("Carrito de %s eliminado", redact_email(email))
