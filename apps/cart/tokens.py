from django.core import signing

from .records import normalize_email

UNSUBSCRIBE_SALT = 'apps.cart.unsubscribe'


def make_unsubscribe_token(email):
    return signing.dumps(normalize_email(email), salt=UNSUBSCRIBE_SALT, compress=True)


def read_unsubscribe_token(token):
    """Email firmado en el token. Lanza signing.BadSignature si fue alterado."""
    return normalize_email(signing.loads(token, salt=UNSUBSCRIBE_SALT))
