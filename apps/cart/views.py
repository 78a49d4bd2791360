"""
Endpoints de carrito abandonado (JSON):

POST /api/abandoned-cart/log/             → el checkout reporta el carrito
GET  /api/abandoned-cart/retrieve/?email= → restaurar carrito desde el correo
GET  /api/abandoned-cart/send-reminders/  → cron: barrido de recordatorios
POST /api/abandoned-cart/converted/       → webhooks de pago: compra completada
GET  /api/abandoned-cart/unsubscribe/?token=

send-reminders y converted requieren X-Api-Key: <ABANDONED_CART_API_KEY>.
"""
import json
import logging

from django.core import signing
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.core.security import check_api_key, client_ip, redact_email

from .exceptions import CartValidationError, StoreConfigurationError, TransientStoreError
from .lifecycle import CartActivityController
from .records import normalize_email
from .reminders import ReminderSweep
from .status import CartStatus
from .store import get_store
from .tokens import read_unsubscribe_token

logger = logging.getLogger(__name__)

API_KEY_SETTING = 'ABANDONED_CART_API_KEY'


def _store_error_response(exc):
    if isinstance(exc, StoreConfigurationError):
        logger.error("Store de carritos sin configurar: %s", exc)
        return JsonResponse({'message': 'Configuration error', 'error': str(exc)}, status=500)
    logger.warning("Store de carritos no disponible: %s", exc)
    return JsonResponse({'message': 'Cart store temporarily unavailable'}, status=503)


def _json_body(request):
    try:
        payload = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _unauthorized(request, view_name):
    logger.warning("%s: clave API inválida desde %s", view_name, client_ip(request))
    return JsonResponse({'message': 'Unauthorized'}, status=401)


@csrf_exempt
@require_POST
def log_activity(request):
    payload = _json_body(request)
    if payload is None:
        return JsonResponse({'message': 'Invalid JSON'}, status=400)

    try:
        controller = CartActivityController(get_store())
        result = controller.record_activity(
            email=payload.get('email'),
            items=payload.get('cartItems'),
            locale=payload.get('locale'),
            currency=payload.get('currency'),
            total_value=payload.get('totalValueAtAbandonment'),
        )
    except CartValidationError as exc:
        logger.info("Reporte de carrito rechazado: %s", list(exc.errors))
        return JsonResponse(
            {'message': 'Missing or invalid cart data.', 'errors': exc.errors},
            status=400,
        )
    except (StoreConfigurationError, TransientStoreError) as exc:
        return _store_error_response(exc)

    if result.created:
        return JsonResponse(
            {'message': 'Cart logged successfully.', 'cartId': result.record.email},
            status=201,
        )
    return JsonResponse({'message': 'Cart activity updated.', 'cartId': result.record.email})


@require_GET
def retrieve_cart(request):
    email = normalize_email(request.GET.get('email'))
    if not email:
        return JsonResponse({'error': 'Email parameter is required'}, status=400)

    try:
        record = CartActivityController(get_store()).get_active(email)
    except (StoreConfigurationError, TransientStoreError) as exc:
        return _store_error_response(exc)

    if record is None:
        logger.info("Sin carrito activo para %s", redact_email(email))
        return JsonResponse(
            {'error': 'No active abandoned cart found for this email'},
            status=404,
        )
    return JsonResponse(record.to_public_dict())


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def send_reminders(request):
    if not check_api_key(request, API_KEY_SETTING):
        return _unauthorized(request, 'send_reminders')

    try:
        result = ReminderSweep(get_store()).run()
    except StoreConfigurationError as exc:
        return _store_error_response(exc)

    data = {'message': 'Abandoned cart reminders checked.'}
    data.update(result.as_dict())
    return JsonResponse(data)


@csrf_exempt
@require_POST
def mark_converted(request):
    if not check_api_key(request, API_KEY_SETTING):
        return _unauthorized(request, 'mark_converted')

    payload = _json_body(request)
    email = normalize_email((payload or {}).get('email'))
    if not email:
        return JsonResponse({'message': 'Email is required'}, status=400)

    try:
        record = CartActivityController(get_store()).mark_converted(email)
    except (StoreConfigurationError, TransientStoreError) as exc:
        return _store_error_response(exc)

    if record is None:
        return JsonResponse({'message': 'No abandoned cart for this email'}, status=404)
    if record.status == CartStatus.COMPLETED:
        return JsonResponse({
            'message': 'Reminder sequence already completed; nothing to convert.',
            'cartId': record.email,
        })
    return JsonResponse({'message': 'Cart marked as converted.', 'cartId': record.email})


@require_GET
def unsubscribe(request):
    try:
        email = read_unsubscribe_token(request.GET.get('token') or '')
    except signing.BadSignature:
        return HttpResponse('Invalid or expired link.', status=400, content_type='text/plain')

    try:
        CartActivityController(get_store()).forget(email)
    except (StoreConfigurationError, TransientStoreError) as exc:
        return _store_error_response(exc)
    return HttpResponse(
        'You will not receive more reminders about this cart.',
        content_type='text/plain',
    )
