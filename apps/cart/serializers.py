"""Validación del reporte de actividad que envía el checkout."""
from rest_framework import serializers


class CartItemSerializer(serializers.Serializer):
    productId = serializers.CharField(required=False, allow_blank=True, default='')
    productName = serializers.CharField(max_length=500)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.FloatField(min_value=0)
    originalPrice = serializers.FloatField(required=False, allow_null=True, min_value=0)
    localizedShortTitle = serializers.DictField(
        child=serializers.CharField(allow_blank=True),
        required=False,
    )
    productImage = serializers.CharField(required=False, allow_blank=True)
    productUrl = serializers.CharField(required=False, allow_blank=True)
    variantId = serializers.CharField(required=False, allow_blank=True)
    currencyCode = serializers.CharField(required=False, allow_blank=True, max_length=10)
    imagePath = serializers.CharField(required=False, allow_blank=True)
    productNameCanonical = serializers.CharField(required=False, allow_blank=True)
    productNameWithVariant = serializers.CharField(required=False, allow_blank=True)
    slugOverride = serializers.CharField(required=False, allow_blank=True)


class CurrencyField(serializers.Field):
    """Acepta un código ('USD') o un objeto {code, symbol, name}."""

    default_error_messages = {
        'invalid': 'Expected a currency code or an object with a "code" key.',
    }

    def to_internal_value(self, data):
        if isinstance(data, str) and data.strip():
            return {'code': data.strip().upper()}
        if isinstance(data, dict) and str(data.get('code') or '').strip():
            currency = {'code': str(data['code']).strip().upper()}
            for key in ('symbol', 'name'):
                if data.get(key):
                    currency[key] = str(data[key])
            return currency
        self.fail('invalid')

    def to_representation(self, value):
        return value


class ActivityReportSerializer(serializers.Serializer):
    email = serializers.EmailField()
    cartItems = CartItemSerializer(many=True, allow_empty=False)
    locale = serializers.CharField(max_length=20)
    currency = CurrencyField(required=False, allow_null=True)
    totalValueAtAbandonment = serializers.FloatField(
        required=False,
        allow_null=True,
        min_value=0,
    )
