import logging

import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


async def send_email(to_email: str, template_id: str, template_params: dict) -> bool:
    """
    Sends a templated email through the EmailJS REST API.
    Returns False when delivery did not happen; never raises.
    """
    if not settings.email_configured or not template_id:
        logger.warning("EmailJS credentials not configured. Skipping email to %s", to_email)
        return False

    payload = {
        "service_id": settings.EMAILJS_SERVICE_ID,
        "template_id": template_id,
        "user_id": settings.EMAILJS_PUBLIC_KEY,
        "accessToken": settings.EMAILJS_PRIVATE_KEY,
        "template_params": {"to_email": to_email, **template_params},
    }

    logger.debug("[EmailJS] template=%s to=%s params=%s", template_id, to_email, template_params)

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(EMAILJS_SEND_URL, json=payload)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(
            "Failed to send email to %s. Status code: %s, response: %s",
            to_email, e.response.status_code, e.response.text,
        )
        return False
    except httpx.HTTPError as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        return False

    logger.info("Email sent successfully to %s", to_email)
    return True
