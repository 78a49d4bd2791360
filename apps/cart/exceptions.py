"""Errores del subsistema de carritos abandonados."""
from django.core.exceptions import ImproperlyConfigured


class AbandonedCartError(Exception):
    """Base de todos los errores de carritos abandonados."""


class CartValidationError(AbandonedCartError):
    """El reporte de actividad no es válido. No se modifica el store."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__('Invalid cart activity report.')


class StoreConfigurationError(AbandonedCartError, ImproperlyConfigured):
    """Store sin configurar o inalcanzable. Distinto de 'registro no encontrado'."""


class TransientStoreError(AbandonedCartError):
    """Timeout o caída de conexión en una operación puntual del store."""


class DispatchError(AbandonedCartError):
    """No se pudo enviar un recordatorio."""


class InvalidStatusTransition(AbandonedCartError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f'Transición inválida: {current} -> {target}')
