"""
Registro de actividad de carrito: uno por email.

Se guarda como JSON con los mismos nombres de campo que envía el checkout
(camelCase), para que el store y la API hablen el mismo formato.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from django.utils.dateparse import parse_datetime

from .status import CartStatus, is_terminal

DEFAULT_PRODUCT_NAME = 'Product'

# (atributo, nombre en JSON)
ITEM_TEXT_FIELDS = [
    ('product_image', 'productImage'),
    ('product_url', 'productUrl'),
    ('variant_id', 'variantId'),
    ('currency_code', 'currencyCode'),
    ('image_path', 'imagePath'),
    ('product_name_canonical', 'productNameCanonical'),
    ('product_name_with_variant', 'productNameWithVariant'),
    ('slug_override', 'slugOverride'),
]


def normalize_email(email):
    return (email or '').strip().lower()


def _decimal(value):
    if value is None or value == '':
        return None
    return Decimal(str(value))


def _decimal_str(value):
    return None if value is None else str(value)


def _timestamp(value):
    parsed = parse_datetime(value or '')
    if parsed is None:
        raise ValueError(f'Fecha inválida: {value!r}')
    return parsed


@dataclass
class CartItem:
    product_id: str
    product_name: str
    quantity: int
    price: Decimal
    original_price: Optional[Decimal] = None
    localized_short_title: Dict[str, str] = field(default_factory=dict)
    product_image: str = ''
    product_url: str = ''
    variant_id: str = ''
    currency_code: str = ''
    image_path: str = ''
    product_name_canonical: str = ''
    product_name_with_variant: str = ''
    slug_override: str = ''

    @property
    def total(self):
        return self.price * self.quantity

    def display_name(self, locale):
        """Nombre para el correo: título corto localizado y luego nombres de catálogo."""
        titles = self.localized_short_title or {}
        name = titles.get(locale) or titles.get('en')
        if not name:
            name = next((t for t in titles.values() if t and t.strip()), '')
        name = (
            name
            or self.product_name_with_variant
            or self.product_name_canonical
            or self.product_name
        )
        return name if name and name.strip() else DEFAULT_PRODUCT_NAME

    def to_dict(self):
        data = {
            'productId': self.product_id,
            'productName': self.product_name,
            'quantity': self.quantity,
            'price': _decimal_str(self.price),
        }
        if self.original_price is not None:
            data['originalPrice'] = _decimal_str(self.original_price)
        if self.localized_short_title:
            data['localizedShortTitle'] = dict(self.localized_short_title)
        for attr, key in ITEM_TEXT_FIELDS:
            value = getattr(self, attr)
            if value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data):
        product_id = data.get('productId') or data.get('variantId') or 'unknown'
        kwargs = {attr: data.get(key) or '' for attr, key in ITEM_TEXT_FIELDS}
        return cls(
            product_id=str(product_id),
            product_name=data.get('productName') or '',
            quantity=int(data['quantity']),
            price=_decimal(data['price']),
            original_price=_decimal(data.get('originalPrice')),
            localized_short_title=dict(data.get('localizedShortTitle') or {}),
            **kwargs,
        )


@dataclass
class CartActivityRecord:
    email: str
    items: List[CartItem]
    locale: str
    status: CartStatus
    logged_at: datetime
    updated_at: datetime
    currency: Optional[Dict[str, str]] = None
    total_value: Optional[Decimal] = None

    def __post_init__(self):
        self.email = normalize_email(self.email)
        self.status = CartStatus(self.status)

    @property
    def is_active(self):
        return not is_terminal(self.status)

    @property
    def currency_code(self):
        return (self.currency or {}).get('code', '')

    @property
    def items_total(self):
        return sum((item.total for item in self.items), Decimal('0'))

    def copy(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        return {
            'email': self.email,
            'cartItems': [item.to_dict() for item in self.items],
            'locale': self.locale,
            'currency': dict(self.currency) if self.currency else None,
            'totalValueAtAbandonment': _decimal_str(self.total_value),
            'status': self.status.value,
            'loggedAt': self.logged_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    def to_public_dict(self):
        """Lo que puede ver el navegador: sin estado ni fechas internas."""
        return {
            'cartItems': [item.to_dict() for item in self.items],
            'locale': self.locale,
            'currency': dict(self.currency) if self.currency else None,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            email=data['email'],
            items=[CartItem.from_dict(item) for item in data.get('cartItems') or []],
            locale=data.get('locale') or '',
            status=data['status'],
            logged_at=_timestamp(data['loggedAt']),
            updated_at=_timestamp(data['updatedAt']),
            currency=data.get('currency') or None,
            total_value=_decimal(data.get('totalValueAtAbandonment')),
        )
