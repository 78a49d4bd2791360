"""
Store de actividad de carritos.

Una clave por email (`<prefijo><email>`) con el registro completo en JSON.
`upsert` sobrescribe el registro entero: quien necesite combinar cambios
debe leer, modificar y escribir.

Backends:
  - RedisCartActivityStore      → producción
  - InMemoryCartActivityStore   → solo tests

El backend se elige con settings.ABANDONED_CART_STORE, igual que CACHES:

    ABANDONED_CART_STORE = {
        'BACKEND': 'apps.cart.store.RedisCartActivityStore',
        'OPTIONS': {'url': REDIS_URL, 'timeout': 5},
    }
"""
import json
import logging

import redis
from django.conf import settings
from django.utils.module_loading import import_string

from apps.core.security import redact_email

from .exceptions import StoreConfigurationError, TransientStoreError
from .records import CartActivityRecord, normalize_email

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = 'abandoned_cart:'
DEFAULT_BATCH_SIZE = 100
DEFAULT_TIMEOUT = 5


def _decode(raw, key):
    try:
        return CartActivityRecord.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError, ArithmeticError) as exc:
        logger.error("Registro ilegible en %s: %s", key, exc)
        return None


class CartActivityStore:
    """Interfaz común de los backends."""

    key_prefix = DEFAULT_KEY_PREFIX

    def key_for(self, email):
        return f"{self.key_prefix}{normalize_email(email)}"

    def upsert(self, record):
        raise NotImplementedError

    def get(self, email):
        raise NotImplementedError

    def delete(self, email):
        raise NotImplementedError

    def iter_active_batches(self):
        """Lotes de registros no terminales. Perezoso: se recorre con cursor."""
        raise NotImplementedError

    def list_active(self):
        active = []
        for batch in self.iter_active_batches():
            active.extend(batch)
        return active


class RedisCartActivityStore(CartActivityStore):

    def __init__(self, url=None, key_prefix=DEFAULT_KEY_PREFIX,
                 batch_size=DEFAULT_BATCH_SIZE, timeout=DEFAULT_TIMEOUT,
                 ttl_seconds=None, client=None):
        if client is None:
            if not (url or '').strip():
                raise StoreConfigurationError(
                    'REDIS_URL no configurado: el store de carritos abandonados no está disponible.'
                )
            try:
                client = redis.Redis.from_url(
                    url,
                    decode_responses=True,
                    socket_timeout=timeout,
                    socket_connect_timeout=timeout,
                )
            except ValueError as exc:
                raise StoreConfigurationError(f'REDIS_URL inválido: {exc}') from exc
        self.client = client
        self.key_prefix = key_prefix
        self.batch_size = batch_size
        self.ttl_seconds = ttl_seconds or None

    def _call(self, operation, *args, **kwargs):
        try:
            return getattr(self.client, operation)(*args, **kwargs)
        except redis.exceptions.AuthenticationError as exc:
            raise StoreConfigurationError(f'Redis rechazó las credenciales: {exc}') from exc
        except (redis.exceptions.TimeoutError, redis.exceptions.ConnectionError) as exc:
            raise TransientStoreError(f'Redis {operation} falló: {exc}') from exc
        except redis.exceptions.RedisError as exc:
            # READONLY, OOM, WRONGTYPE...
            raise TransientStoreError(f'Redis {operation} respondió con error: {exc}') from exc

    def upsert(self, record):
        key = self.key_for(record.email)
        self._call('set', key, json.dumps(record.to_dict()), ex=self.ttl_seconds)
        logger.debug("Carrito guardado para %s", redact_email(record.email))

    def get(self, email):
        key = self.key_for(email)
        raw = self._call('get', key)
        if raw is None:
            return None
        return _decode(raw, key)

    def delete(self, email):
        self._call('delete', self.key_for(email))

    def iter_active_batches(self):
        cursor = 0
        match = f"{self.key_prefix}*"
        while True:
            try:
                cursor, keys = self._call('scan', cursor, match=match, count=self.batch_size)
            except TransientStoreError:
                logger.exception("SCAN interrumpido; se devuelve lo leído hasta ahora")
                return
            if keys:
                try:
                    values = self._call('mget', keys)
                except TransientStoreError:
                    logger.exception("MGET falló para un lote de %s claves; se omite", len(keys))
                    values = []
                batch = []
                for key, raw in zip(keys, values):
                    if raw is None:
                        continue
                    record = _decode(raw, key)
                    if record is not None and record.is_active:
                        batch.append(record)
                if batch:
                    yield batch
            if int(cursor) == 0:
                return


class InMemoryCartActivityStore(CartActivityStore):
    """Store en memoria para tests. Guarda copias serializadas, nunca el objeto."""

    def __init__(self, key_prefix=DEFAULT_KEY_PREFIX, batch_size=DEFAULT_BATCH_SIZE, **kwargs):
        self.key_prefix = key_prefix
        self.batch_size = batch_size
        self._data = {}

    def upsert(self, record):
        self._data[self.key_for(record.email)] = json.dumps(record.to_dict())

    def get(self, email):
        key = self.key_for(email)
        raw = self._data.get(key)
        return None if raw is None else _decode(raw, key)

    def delete(self, email):
        self._data.pop(self.key_for(email), None)

    def iter_active_batches(self):
        keys = sorted(self._data)
        for start in range(0, len(keys), self.batch_size):
            batch = []
            for key in keys[start:start + self.batch_size]:
                record = _decode(self._data[key], key)
                if record is not None and record.is_active:
                    batch.append(record)
            if batch:
                yield batch


def get_store():
    """Construye el store configurado en settings.ABANDONED_CART_STORE."""
    config = getattr(settings, 'ABANDONED_CART_STORE', None) or {}
    backend = config.get('BACKEND', 'apps.cart.store.RedisCartActivityStore')
    options = dict(config.get('OPTIONS') or {})
    try:
        backend_cls = import_string(backend)
    except ImportError as exc:
        raise StoreConfigurationError(f'Backend de store inválido: {backend}') from exc
    return backend_cls(**options)
