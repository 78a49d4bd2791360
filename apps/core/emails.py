import logging
from urllib.parse import urlencode

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils import translation
from django.utils.translation import gettext as _

logger = logging.getLogger(__name__)

DEFAULT_OFFERS = {
    2: {'coupon_code': 'COMEBACK10', 'discount_percentage': 10, 'validity_hours': 48},
    3: {'coupon_code': 'COMEBACK15', 'discount_percentage': 15, 'validity_hours': 24},
    4: {'coupon_code': 'LASTCHANCE20', 'discount_percentage': 20, 'validity_hours': 12},
}


def _default_from_email():
    configured = getattr(settings, "DEFAULT_FROM_EMAIL", "").strip()
    if configured:
        return configured
    return "no-reply@localhost"


def _site_base_url():
    return (getattr(settings, "SITE_BASE_URL", "") or "").strip().rstrip("/")


def _site_context():
    return {
        "site_name": getattr(settings, "SITE_NAME", "") or "Store",
        "site_base_url": _site_base_url(),
        "support_email": getattr(settings, "SUPPORT_EMAIL", "") or _default_from_email(),
    }


def send_templated_email(
    subject,
    to_emails,
    template_key,
    context=None,
    reply_to=None,
):
    recipients = [e for e in (to_emails or []) if e]
    if not recipients:
        return 0

    payload = _site_context()
    if context:
        payload.update(context)

    try:
        text_body = render_to_string(f"emails/{template_key}.txt", payload)
        html_body = render_to_string(f"emails/{template_key}.html", payload)
    except Exception:
        logger.exception(
            "Error renderizando template de email '%s'",
            template_key,
        )
        return 0

    reply_to_list = reply_to
    if reply_to_list is None and payload.get("support_email"):
        reply_to_list = [payload["support_email"]]

    headers = {
        "X-Auto-Response-Suppress": "All",
        "Precedence": "auto",
        "Auto-Submitted": "auto-generated",
    }
    if payload.get("unsubscribe_url"):
        headers["List-Unsubscribe"] = f"<{payload['unsubscribe_url']}>"

    message = EmailMultiAlternatives(
        subject=subject.strip().replace("\n", " "),
        body=text_body,
        from_email=_default_from_email(),
        to=recipients,
        reply_to=reply_to_list,
        headers=headers,
    )
    message.attach_alternative(html_body, "text/html")
    try:
        return message.send(fail_silently=False)
    except Exception:
        logger.exception(
            "Error enviando email '%s' (%s destinatario(s))",
            template_key,
            len(recipients),
        )
        return 0


def return_to_cart_url(record, step):
    query = urlencode({
        "cart_ref": record.email,
        "utm_source": "abandoned_cart",
        "utm_medium": "email",
        "utm_campaign": f"abandoned_cart_{step}",
    })
    return f"{_site_base_url()}/{record.locale}/checkout?{query}"


def unsubscribe_url(record):
    from apps.cart.tokens import make_unsubscribe_token

    query = urlencode({"token": make_unsubscribe_token(record.email)})
    return f"{_site_base_url()}{reverse('cart:unsubscribe')}?{query}"


def _reminder_offer(step):
    offers = getattr(settings, "ABANDONED_CART_OFFERS", None) or DEFAULT_OFFERS
    return offers.get(step)


def _reminder_subject(step, site_name, offer):
    if step == 1:
        return _("Did you forget something at %(site)s?") % {"site": site_name}
    if step == 2:
        return _("Your %(discount)s%% discount is waiting") % {
            "discount": offer["discount_percentage"]}
    if step == 3:
        return _("Act fast: %(discount)s%% off your cart") % {
            "discount": offer["discount_percentage"]}
    return _("Last chance: %(discount)s%% off everything") % {
        "discount": offer["discount_percentage"]}


def notify_cart_abandoned(step, record):
    """
    Envía el recordatorio `step` (1-4) del carrito abandonado.
    True si el backend de correo aceptó el mensaje.
    """
    offer = _reminder_offer(step) if step > 1 else None
    if step > 1 and not offer:
        logger.error("Sin oferta configurada para el recordatorio %s", step)
        return False

    site = _site_context()
    items = [
        {
            "name": item.display_name(record.locale),
            "quantity": item.quantity,
            "price": item.price,
            "total": item.total,
            "image": item.product_image or item.image_path,
            "url": item.product_url,
        }
        for item in record.items
    ]
    context = {
        "step": step,
        "items": items,
        "cart_total": record.total_value if record.total_value is not None else record.items_total,
        "currency": record.currency or {},
        "locale": record.locale,
        "return_to_cart_url": return_to_cart_url(record, step),
        "unsubscribe_url": unsubscribe_url(record),
        "offer": offer,
    }
    with translation.override(record.locale or None):
        subject = _reminder_subject(step, site["site_name"], offer)
        sent = send_templated_email(
            subject=subject,
            to_emails=[record.email],
            template_key=f"abandoned_cart_{step}",
            context=context,
        )
    return bool(sent)
