"""
Máquina de estados de un carrito abandonado.

    pending_1 -> sent_1_pending_2 -> sent_2_pending_3 -> sent_3_pending_4 -> completed
        \\______________________ converted (compra realizada) ___________/

El orden de declaración es el orden total: un estado nunca retrocede.
"""
from django.db import models

from .exceptions import InvalidStatusTransition


class CartStatus(models.TextChoices):
    PENDING_1 = 'pending_1', 'Pendiente recordatorio 1'
    SENT_1_PENDING_2 = 'sent_1_pending_2', 'Recordatorio 1 enviado'
    SENT_2_PENDING_3 = 'sent_2_pending_3', 'Recordatorio 2 enviado'
    SENT_3_PENDING_4 = 'sent_3_pending_4', 'Recordatorio 3 enviado'
    COMPLETED = 'completed', 'Secuencia completada'
    CONVERTED = 'converted', 'Convertido'


REMINDER_SEQUENCE = [
    CartStatus.PENDING_1,
    CartStatus.SENT_1_PENDING_2,
    CartStatus.SENT_2_PENDING_3,
    CartStatus.SENT_3_PENDING_4,
    CartStatus.COMPLETED,
]

TERMINAL_STATUSES = frozenset({CartStatus.COMPLETED, CartStatus.CONVERTED})

REMINDER_STEPS = len(REMINDER_SEQUENCE) - 1


def rank(status):
    """Posición de `status` en el orden total."""
    return list(CartStatus).index(CartStatus(status))


def is_terminal(status):
    return CartStatus(status) in TERMINAL_STATUSES


def pending_step(status):
    """Número de recordatorio (1-4) que espera `status`, o None si es terminal."""
    status = CartStatus(status)
    if status in TERMINAL_STATUSES:
        return None
    return REMINDER_SEQUENCE.index(status) + 1


def next_status(status):
    """Estado siguiente tras enviar el recordatorio pendiente."""
    step = pending_step(status)
    if step is None:
        raise InvalidStatusTransition(status, None)
    return REMINDER_SEQUENCE[step]


def validate_transition(current, target):
    """
    Solo se permite avanzar un paso, o pasar a `converted` desde un estado
    no terminal. El reinicio por sesión vencida reemplaza el registro y no
    pasa por aquí.
    """
    current = CartStatus(current)
    target = CartStatus(target)
    if current in TERMINAL_STATUSES:
        raise InvalidStatusTransition(current, target)
    if target == CartStatus.CONVERTED:
        return target
    if target != next_status(current):
        raise InvalidStatusTransition(current, target)
    return target
