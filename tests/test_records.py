from decimal import Decimal

from apps.cart.records import CartActivityRecord, CartItem, normalize_email
from apps.cart.status import CartStatus

from .factories import START, make_item, make_record


def test_normalize_email():
    assert normalize_email("  Ana@Example.COM ") == "ana@example.com"
    assert normalize_email(None) == ""


class TestDisplayName:
    def test_localized_title_for_locale(self):
        item = make_item(localized_short_title={"es": "Cera mate", "en": "Matte wax"})
        assert item.display_name("es") == "Cera mate"

    def test_falls_back_to_english_title(self):
        item = make_item(localized_short_title={"en": "Matte wax", "fr": "Cire"})
        assert item.display_name("de") == "Matte wax"

    def test_falls_back_to_any_non_blank_title(self):
        item = make_item(localized_short_title={"fr": "  ", "it": "Cera opaca"})
        assert item.display_name("de") == "Cera opaca"

    def test_catalog_names_after_titles(self):
        item = make_item(
            name="Wax",
            product_name_canonical="Matte Wax",
            product_name_with_variant="Matte Wax 100ml",
        )
        assert item.display_name("en") == "Matte Wax 100ml"
        item.product_name_with_variant = ""
        assert item.display_name("en") == "Matte Wax"
        item.product_name_canonical = ""
        assert item.display_name("en") == "Wax"

    def test_default_when_everything_is_blank(self):
        item = make_item(name=" ")
        assert item.display_name("en") == "Product"


class TestCartItemDict:
    def test_product_id_falls_back_to_variant(self):
        item = CartItem.from_dict({"variantId": "var-9", "productName": "Gel", "quantity": 1, "price": 5})
        assert item.product_id == "var-9"

    def test_product_id_unknown_without_ids(self):
        item = CartItem.from_dict({"productName": "Gel", "quantity": 1, "price": 5})
        assert item.product_id == "unknown"

    def test_price_is_kept_exact(self):
        item = CartItem.from_dict({"productId": "p1", "productName": "Gel", "quantity": 3, "price": 9.99})
        assert item.price == Decimal("9.99")
        assert item.total == Decimal("29.97")
        assert item.to_dict()["price"] == "9.99"

    def test_optional_fields_are_omitted_when_empty(self):
        data = make_item().to_dict()
        assert set(data) == {"productId", "productName", "quantity", "price"}


class TestCartActivityRecord:
    def test_email_and_status_are_normalized(self):
        record = make_record(email=" Ana@Example.com", status="sent_1_pending_2")
        assert record.email == "ana@example.com"
        assert record.status is CartStatus.SENT_1_PENDING_2

    def test_is_active(self):
        assert make_record().is_active
        assert not make_record(status=CartStatus.CONVERTED).is_active

    def test_stored_format_uses_camel_case(self):
        data = make_record(total_value=Decimal("19.98")).to_dict()
        assert data["email"] == "ana@example.com"
        assert data["status"] == "pending_1"
        assert data["loggedAt"] == START.isoformat()
        assert data["totalValueAtAbandonment"] == "19.98"
        assert data["currency"] == {"code": "USD"}

    def test_from_dict_restores_aware_datetimes(self):
        record = CartActivityRecord.from_dict(make_record().to_dict())
        assert record.updated_at == START
        assert record.updated_at.tzinfo is not None
        assert record.items[0].display_name("en") == "Widget"

    def test_public_dict_hides_internal_state(self):
        data = make_record().to_public_dict()
        assert set(data) == {"cartItems", "locale", "currency"}

    def test_items_total(self):
        record = make_record(items=[make_item(quantity=2, price="9.99"), make_item("Gel", 1, "5")])
        assert record.items_total == Decimal("24.98")
        assert record.currency_code == "USD"
