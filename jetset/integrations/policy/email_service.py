"""
Transactional email flows: newsletter subscription, contact form, inquiry
confirmation, quote delivery and quote expiry reminders.

Every user-supplied value is HTML-escaped before it reaches a template; each
message carries a plain-text alternative derived from its HTML.
"""

import asyncio
import html
import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, Optional

from jetset.integrations.contracts.interfaces import EmailMessage, EmailSender
from jetset.utils.config_loader import AppConfig
from jetset.utils.validation import is_valid_email

logger = logging.getLogger(__name__)

EMAIL_TYPES = ("subscription", "contact")

_TAG_RE = re.compile(r"<[^>]*>?")
_SPACE_RE = re.compile(r"\s+")


class EmailRequestError(ValueError):
    """The email request itself is invalid (reported as HTTP 400)."""


def strip_html(markup: str) -> str:
    return _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", markup))).strip()


def _e(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def _layout(title: str, body: str, footer: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; line-height: 1.6; color: #333; "
        "max-width: 600px; margin: 0 auto;\">"
        f"<div style=\"background: #055B75; padding: 25px; text-align: center; color: white;\"><h2>{title}</h2></div>"
        f"<div style=\"padding: 25px;\">{body}</div>"
        f"<div style=\"background: #f8f9fa; padding: 15px; text-align: center; font-size: 12px; color: #666;\">{footer}</div>"
        "</body></html>"
    )


class EmailService:
    def __init__(self, sender: EmailSender, db, config: AppConfig):
        self.sender = sender
        self.db = db
        self.config = config

    @property
    def admin_address(self) -> str:
        return os.getenv("COMPANY_EMAIL") or self.config.email.admin_address

    @property
    def company(self) -> str:
        return self.config.email.company_name

    def _message(self, to: str, subject: str, markup: str, reply_to: Optional[str] = None) -> EmailMessage:
        return EmailMessage(
            to=[to],
            subject=subject,
            html=markup,
            text=strip_html(markup),
            from_address=os.getenv("EMAIL_FROM") or self.config.email.from_address,
            reply_to=reply_to,
        )

    def _footer(self) -> str:
        return f"<p><strong>{_e(self.company)} Travel</strong></p><p>&copy; {datetime.now().year} {_e(self.company)}. All rights reserved.</p>"

    # ------------------------------------------------------------------
    # /api/email
    # ------------------------------------------------------------------

    async def handle(self, body: Dict[str, Any]) -> Dict[str, Any]:
        email_type = body.get("type")
        if email_type == "subscription":
            return await self.subscribe(body.get("email"), body.get("source"))
        if email_type == "contact":
            return await self.contact(body.get("name"), body.get("email"), body.get("message"))
        raise EmailRequestError('Invalid type. Use "subscription" or "contact"')

    async def subscribe(self, email: Optional[str], source: Optional[str] = None) -> Dict[str, Any]:
        if not email:
            raise EmailRequestError("Email is required")
        if not is_valid_email(email):
            raise EmailRequestError("Please enter a valid email address")

        subscription, created = self.db.add_subscription(email, source)
        logger.info("Subscription for %s from %s (new=%s)", email, source or "website", created)

        welcome = _layout(
            f"Welcome to {_e(self.company)}!",
            "<h3>Subscription Confirmed!</h3>"
            "<p>Thank you for subscribing. Get ready for exclusive deals!</p>"
            "<ul><li><strong>Exclusive Deals</strong> - Up to 50% off</li>"
            "<li><strong>Travel Inspiration</strong> - Curated guides</li>"
            "<li><strong>Early Access</strong> - Flash sales first</li></ul>",
            self._footer(),
        )
        admin = _layout(
            "New Newsletter Subscriber!",
            "<p>Someone just subscribed to your newsletter.</p>"
            f"<p><strong>Email:</strong> {_e(email)}</p>"
            f"<p><strong>Source:</strong> {_e(source or 'website')} page</p>"
            f"<p><strong>Time:</strong> {_e(datetime.now().strftime('%Y-%m-%d %H:%M:%S'))}</p>",
            f"<p>{_e(self.company)} Admin Notification</p>",
        )
        subscriber_result, admin_result = await asyncio.gather(
            self.sender.send(self._message(email, f"Welcome to {self.company} Newsletter!", welcome)),
            self.sender.send(self._message(self.admin_address, f"New Subscriber: {email}", admin)),
        )
        return {
            "success": True,
            "message": "Subscription emails sent successfully",
            "data": {
                "subscriberResult": subscriber_result,
                "adminResult": admin_result,
                "subscription": {"id": subscription["id"], "email": subscription["email"], "created": created},
            },
        }

    async def contact(self, name: Optional[str], email: Optional[str], message: Optional[str]) -> Dict[str, Any]:
        if not name or not email or not message:
            raise EmailRequestError("Name, email, and message are required")
        if not is_valid_email(email):
            raise EmailRequestError("Please enter a valid email address")

        customer = _layout(
            "We've Received Your Message!",
            f"<p>Dear {_e(name)},</p>"
            f"<p>Thank you for contacting {_e(self.company)}! Our team will get back to you within 24-48 hours.</p>"
            f"<p><strong>Your Message:</strong></p><p>{_e(message)}</p>"
            f"<p>Best regards,<br>The {_e(self.company)} Team</p>",
            self._footer(),
        )
        admin = _layout(
            "New Contact Form Submission",
            f"<p><strong>Name:</strong> {_e(name)}</p>"
            f"<p><strong>Email:</strong> {_e(email)}</p>"
            f"<p><strong>Time:</strong> {_e(datetime.now().strftime('%Y-%m-%d %H:%M:%S'))}</p>"
            f"<p><strong>Message:</strong></p><p>{_e(message)}</p>"
            "<p>Please respond to this inquiry within 24-48 hours.</p>",
            f"<p>{_e(self.company)} Admin Notification</p>",
        )
        customer_result, admin_result = await asyncio.gather(
            self.sender.send(self._message(email, f"We've Received Your Message - {self.company}", customer)),
            self.sender.send(self._message(self.admin_address, f"New Contact: {name} - {email}", admin, reply_to=email)),
        )
        return {
            "success": True,
            "message": "Contact notification emails sent successfully",
            "data": {"customerResult": customer_result, "adminResult": admin_result},
        }

    # ------------------------------------------------------------------
    # Booking notifications
    # ------------------------------------------------------------------

    async def send_inquiry_confirmation(self, inquiry: Dict[str, Any]) -> Dict[str, Any]:
        kind = str(inquiry.get("inquiry_type") or "travel").capitalize()
        reference = str(inquiry["id"])[:8].upper()
        customer = _layout(
            "Inquiry Received",
            f"<p>Dear {_e(inquiry.get('customer_name'))},</p>"
            f"<p>Thank you for your {_e(kind.lower())} inquiry. Our travel experts will prepare a personalised quote "
            "and contact you within 24 hours.</p>"
            f"<p><strong>Reference:</strong> {_e(reference)}</p>",
            self._footer(),
        )
        admin = _layout(
            f"New {_e(kind)} Inquiry",
            f"<p><strong>Customer:</strong> {_e(inquiry.get('customer_name'))} ({_e(inquiry.get('customer_email'))})</p>"
            f"<p><strong>Phone:</strong> {_e(inquiry.get('customer_phone') or '-')}</p>"
            f"<p><strong>Reference:</strong> {_e(reference)}</p>"
            f"<p><strong>Requirements:</strong> {_e(inquiry.get('special_requirements') or '-')}</p>",
            f"<p>{_e(self.company)} Admin Notification</p>",
        )
        customer_result, admin_result = await asyncio.gather(
            self.sender.send(self._message(inquiry["customer_email"], f"Your {kind} Inquiry - {self.company}", customer)),
            self.sender.send(self._message(self.admin_address, f"New {kind} Inquiry: {inquiry.get('customer_name')}", admin)),
        )
        return {"customerResult": customer_result, "adminResult": admin_result}

    async def send_quote(self, quote_row: Dict[str, Any], inquiry: Dict[str, Any]) -> Dict[str, Any]:
        amount = f"{float(quote_row['total_amount']):,.2f} {quote_row.get('currency') or 'USD'}"
        expires = quote_row.get("expires_at")
        link = f"{(os.getenv('FRONTEND_URL') or self.config.frontend_url).rstrip('/')}/inquiry/{quote_row['inquiry_id']}"
        markup = _layout(
            "Your Travel Quote is Ready",
            f"<p>Dear {_e(inquiry.get('customer_name'))},</p>"
            f"<p><strong>{_e(quote_row.get('title'))}</strong> ({_e(quote_row.get('quote_number'))})</p>"
            f"<p>{_e(quote_row.get('description') or '')}</p>"
            f"<p><strong>Total:</strong> {_e(amount)}</p>"
            + (f"<p><strong>Valid until:</strong> {_e(expires.strftime('%Y-%m-%d') if hasattr(expires, 'strftime') else expires)}</p>" if expires else "")
            + f"<p><a href=\"{_e(link)}\">Review and pay your quote</a></p>",
            self._footer(),
        )
        return await self.sender.send(
            self._message(inquiry["customer_email"], f"Your Quote {quote_row.get('quote_number')} - {self.company}", markup)
        )

    async def send_quote_expiring(self, quote_row: Dict[str, Any], inquiry: Dict[str, Any], days_left: int) -> Dict[str, Any]:
        link = f"{(os.getenv('FRONTEND_URL') or self.config.frontend_url).rstrip('/')}/inquiry/{quote_row['inquiry_id']}"
        markup = _layout(
            "Your Quote Expires Soon",
            f"<p>Dear {_e(inquiry.get('customer_name'))},</p>"
            f"<p>Your quote <strong>{_e(quote_row.get('quote_number'))}</strong> for {_e(quote_row.get('title'))} "
            f"expires in {days_left} day{'s' if days_left != 1 else ''}.</p>"
            f"<p><a href=\"{_e(link)}\">Complete your booking</a></p>",
            self._footer(),
        )
        return await self.sender.send(
            self._message(inquiry["customer_email"], f"Reminder: Quote {quote_row.get('quote_number')} expires soon", markup)
        )

    async def send_quote_expired(self, quote_row: Dict[str, Any], inquiry: Dict[str, Any]) -> Dict[str, Any]:
        amount = f"{quote_row.get('currency') or 'USD'} {float(quote_row['total_amount']):,.2f}"
        markup = _layout(
            "Quote Expired",
            f"<p>Dear {_e(inquiry.get('customer_name'))},</p>"
            f"<p>Unfortunately, your travel quote <strong>{_e(quote_row.get('title'))}</strong> has expired.</p>"
            f"<p><strong>Quote Amount:</strong> {_e(amount)}</p>"
            "<p>If you're still interested in this travel plan, contact us and we'll prepare a new quote.</p>",
            self._footer(),
        )
        return await self.sender.send(
            self._message(inquiry["customer_email"], "Your Travel Quote Has Expired", markup)
        )
