import hashlib
import hmac

from django.conf import settings


def redact_email(email):
    """Huella corta del email para logs. Sin redacción devuelve el email tal cual."""
    email = (email or '').strip().lower()
    if not email or not getattr(settings, 'ABANDONED_CART_REDACT_EMAILS', True):
        return email
    digest = hashlib.sha256(email.encode()).hexdigest()[:12]
    return f"email#{digest}"


def client_ip(request):
    xff = request.META.get('HTTP_X_FORWARDED_FOR', '')
    return xff.split(',')[0].strip() if xff else request.META.get('REMOTE_ADDR', '?')


def check_api_key(request, setting_name):
    """
    Valida X-Api-Key o Authorization: Bearer contra settings.<setting_name>.
    Sin clave configurada el endpoint queda deshabilitado.
    """
    expected = (getattr(settings, setting_name, '') or '').strip()
    if not expected:
        return False
    provided = (
        request.headers.get('X-Api-Key', '')
        or request.headers.get('Authorization', '').removeprefix('Bearer ').strip()
    )
    return hmac.compare_digest(provided.encode(), expected.encode())
