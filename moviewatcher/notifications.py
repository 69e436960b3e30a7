"""Notification rendering and delivery to external channels."""

from __future__ import annotations

import datetime as dt
import logging
import os
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Dict, List, Protocol, Sequence
from zoneinfo import ZoneInfo

import requests

from .errors import DeliveryFailure
from .models import Showing, Watcher

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_ENDPOINT = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
DEFAULT_TIMEZONE = "Europe/Amsterdam"

TAG_LABELS = (
    ("is_3d", "3D"),
    ("imax", "IMAX"),
    ("ov", "OV"),
    ("nl", "NL"),
    ("hfr", "HFR"),
    ("atmos", "ATMOS"),
    ("is_4k", "4K"),
    ("laser", "LASER"),
    ("is_4dx", "4DX"),
    ("dolby_cinema", "DOLBY CINEMA"),
)


class Notifier(Protocol):
    """Delivery boundary used by the dispatcher."""

    def send(self, recipient_user_id: str, header: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class Contact:
    """Delivery addresses and enabled channels for one user."""

    user_id: str
    email: str = ""
    phone_number: str = ""
    slack_webhook: str = ""
    channels: Sequence[str] = field(default_factory=tuple)


class Channel(Protocol):
    """A single delivery channel such as SMS or email."""

    channel_id: str

    def deliver(self, contact: Contact, header: str, body: str) -> None:
        ...


@dataclass
class SlackChannel:
    """Push messages to the user's Slack Incoming Webhook."""

    timeout: int = 10
    channel_id: str = "SLACK"

    def deliver(self, contact: Contact, header: str, body: str) -> None:
        if not contact.slack_webhook:
            raise DeliveryFailure(f"user {contact.user_id} has no Slack webhook")
        response = requests.post(
            contact.slack_webhook,
            json={"text": f"{header}\n{body}"},
            timeout=self.timeout,
        )
        response.raise_for_status()


@dataclass
class SmsChannel:
    """Send the message header as SMS through the Twilio REST API."""

    account_sid: str
    auth_token: str
    from_number: str
    timeout: int = 10
    channel_id: str = "SMS"

    def deliver(self, contact: Contact, header: str, body: str) -> None:
        if not contact.phone_number:
            raise DeliveryFailure(f"user {contact.user_id} has no phone number")
        response = requests.post(
            TWILIO_MESSAGES_ENDPOINT.format(sid=self.account_sid),
            auth=(self.account_sid, self.auth_token),
            data={
                "To": contact.phone_number,
                "From": self.from_number,
                "Body": header,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()


@dataclass
class EmailChannel:
    """Send messages over SMTP with STARTTLS."""

    host: str
    port: int
    username: str
    password: str
    sender: str
    channel_id: str = "EMAIL"

    def deliver(self, contact: Contact, header: str, body: str) -> None:
        if not contact.email:
            raise DeliveryFailure(f"user {contact.user_id} has no email address")
        message = EmailMessage()
        message["Subject"] = header.replace("\n", " ")
        message["From"] = self.sender
        message["To"] = contact.email
        message.set_content(body)

        context = ssl.create_default_context()
        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls(context=context)
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)


@dataclass
class ContactNotifier:
    """Route notifications to each user's enabled channels."""

    contacts: Dict[str, Contact]
    channels: List[Channel]

    def send(self, recipient_user_id: str, header: str, body: str) -> None:
        contact = self.contacts.get(recipient_user_id)
        if contact is None:
            raise DeliveryFailure(f"no contact details for user {recipient_user_id}")

        available = {channel.channel_id: channel for channel in self.channels}
        selected = [
            available[channel_id]
            for channel_id in contact.channels
            if channel_id in available
        ]
        if not selected:
            raise DeliveryFailure(
                f"no configured channel enabled for user {recipient_user_id}"
            )

        delivered = 0
        for channel in selected:
            try:
                channel.deliver(contact, header, body)
                delivered += 1
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Failed to deliver notification via %s to user %s",
                    channel.channel_id,
                    recipient_user_id,
                )
        if not delivered:
            raise DeliveryFailure(f"every channel failed for user {recipient_user_id}")


def build_channels_from_env() -> List[Channel]:
    """Construct delivery channels from environment configuration."""
    channels: List[Channel] = []

    if (os.getenv("ENABLE_SLACK") or "").strip().lower() in ("1", "true", "yes"):
        channels.append(SlackChannel())

    twilio_sid = (os.getenv("TWILIO_ACCOUNT_SID") or "").strip()
    twilio_token = (os.getenv("TWILIO_AUTH_TOKEN") or "").strip()
    twilio_from = (os.getenv("TWILIO_FROM_NUMBER") or "").strip()
    if twilio_sid and twilio_token and twilio_from:
        channels.append(
            SmsChannel(
                account_sid=twilio_sid,
                auth_token=twilio_token,
                from_number=twilio_from,
            )
        )

    smtp_host = (os.getenv("SMTP_HOST") or "").strip()
    smtp_from = (os.getenv("SMTP_FROM") or "").strip()
    if smtp_host and smtp_from:
        channels.append(
            EmailChannel(
                host=smtp_host,
                port=int(os.getenv("SMTP_PORT") or 587),
                username=(os.getenv("SMTP_USERNAME") or "").strip(),
                password=os.getenv("SMTP_PASSWORD") or "",
                sender=smtp_from,
            )
        )

    return channels


def format_header(watcher: Watcher, match_count: int) -> str:
    return f"{watcher.name}\n+{match_count} matches"


def format_showing(showing: Showing, tz: dt.tzinfo) -> str:
    """Render one showing as a single human-readable line."""
    if showing.start_time >= 0:
        start = dt.datetime.fromtimestamp(showing.start_time / 1000, tz=tz)
        when = start.strftime("%Y-%m-%d %H:%M")
    else:
        when = "unknown time"
    tags = [label for name, label in TAG_LABELS if getattr(showing, name)]
    return f"{when} | {showing.cinema_id} | {' '.join(tags) or '-'}"


class NotificationDispatcher:
    """Aggregate a watcher's matches into one notification."""

    def __init__(self, notifier: Notifier, timezone: str = DEFAULT_TIMEZONE):
        self.notifier = notifier
        self.tz = ZoneInfo(timezone)

    def dispatch(self, watcher: Watcher, matches: Sequence[Showing]) -> bool:
        """Send one notification for ``matches``; return whether it went out."""
        if not matches:
            return False

        ordered = sorted(matches, key=Showing.sort_key)
        try:
            header = format_header(watcher, len(ordered))
            body = "\n".join(format_showing(showing, self.tz) for showing in ordered)
            self.notifier.send(watcher.user_id, header, body)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Failed to notify user %s for watcher %s", watcher.user_id, watcher.id
            )
            return False
        logger.info(
            "Notified user %s about %d matches for watcher %s",
            watcher.user_id,
            len(ordered),
            watcher.id,
        )
        return True


__all__ = [
    "Channel",
    "Contact",
    "ContactNotifier",
    "EmailChannel",
    "NotificationDispatcher",
    "Notifier",
    "SlackChannel",
    "SmsChannel",
    "build_channels_from_env",
    "format_header",
    "format_showing",
]
