from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from apps.cart.records import CartActivityRecord, CartItem
from apps.cart.status import CartStatus

START = datetime(2024, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


class FakeClock:
    """Reloj controlado a mano: clock() devuelve `now`."""

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


def item_payload(name="Widget", quantity=2, price=9.99, **extra):
    data = {
        "productId": f"prod-{name.lower()}",
        "productName": name,
        "quantity": quantity,
        "price": price,
    }
    data.update(extra)
    return data


def make_item(name="Widget", quantity=2, price="9.99", **extra):
    return CartItem(
        product_id=f"prod-{name.lower()}",
        product_name=name,
        quantity=quantity,
        price=Decimal(price),
        **extra,
    )


def make_record(email="ana@example.com", status=CartStatus.PENDING_1, updated_at=START,
                logged_at=None, locale="en", items=None, **extra):
    extra.setdefault("currency", {"code": "USD"})
    return CartActivityRecord(
        email=email,
        items=items or [make_item()],
        locale=locale,
        status=status,
        logged_at=logged_at or updated_at,
        updated_at=updated_at,
        **extra,
    )
