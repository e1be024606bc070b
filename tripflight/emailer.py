"""Email notification using yagmail.

Isolated from application logic for easier mocking/testing.
"""
import logging

import yagmail

from .config import Settings, settings as default_settings
from .models import RouteResult


def build_subject(results: list[RouteResult], currency: str) -> str:
    cheapest = results[0]
    route = f"{cheapest.departure_city}-{cheapest.destination_city}"
    return f"Trip.com fares {route}: from {cheapest.total_price:g} {currency} ({len(results)} found)"


def send_results_email(results: list[RouteResult], html_body: str, settings: Settings | None = None) -> bool:
    settings = settings or default_settings
    if not results:
        logging.info("Email not sent: no results.")
        return False
    if not settings.email_configured():
        logging.warning("Email not sent: email credentials not fully configured.")
        return False
    yag = yagmail.SMTP(settings.src_mail, settings.src_pwd, port=587, smtp_starttls=True, smtp_ssl=False)
    yag.send(to=settings.dst_mail, subject=build_subject(results, settings.currency), contents=html_body)
    logging.info("Email sent to %s", settings.dst_mail)
    return True
