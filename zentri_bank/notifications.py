"""
Notification Engine Module

Best-effort transaction emails. Delivery runs through a pluggable async
channel provider: SMTP in production, a logging provider when mail is
disabled. Sending never raises; callers get a DeliveryResult and a
failed email never undoes a committed banking operation.
"""

import asyncio
import re
import smtplib
import socket
import ssl
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from html import escape
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .logging_config import get_logger, log_action
from .transactions import is_credit, is_debit


@dataclass
class DeliveryResult:
    """Outcome of one email send"""
    success: bool
    recipients: List[str]
    attempts: int = 0
    message_id: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class OutgoingEmail:
    to: List[str]
    subject: str
    text: str
    html: str
    headers: Dict[str, str] = field(default_factory=dict)


class ChannelProvider(ABC):
    """Abstract base class for notification channel providers"""

    @abstractmethod
    async def send(self, email: OutgoingEmail) -> DeliveryResult:
        """Deliver the message. Must not raise."""
        pass


class LogChannelProvider(ChannelProvider):
    """Logs messages instead of sending them"""

    def __init__(self, logger=None):
        self.logger = logger or get_logger("zentri.notifications")
        self.sent: List[OutgoingEmail] = []

    async def send(self, email: OutgoingEmail) -> DeliveryResult:
        self.sent.append(email)
        self.logger.info(f"EMAIL to {', '.join(email.to)}: {email.subject}")
        return DeliveryResult(
            success=True,
            recipients=list(email.to),
            attempts=1,
            message_id=f"LOG-{uuid.uuid4().hex[:12]}"
        )


class SMTPTransport:
    """Blocking SMTP sender; one connection per message"""

    def __init__(
        self,
        host: str,
        port: int = 465,
        use_ssl: bool = True,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 20.0
    ):
        self.host = host
        self.port = port
        self.use_ssl = use_ssl
        self.username = username
        self.password = password
        self.timeout = timeout

    def send(self, message: EmailMessage, envelope_from: str, recipients: List[str]) -> None:
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        if self.use_ssl:
            client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with client:
            if not self.use_ssl:
                client.starttls(context=context)
            if self.username:
                client.login(self.username, self.password or "")
            client.send_message(message, from_addr=envelope_from, to_addrs=recipients)


PERMANENT_ERRORS = (
    smtplib.SMTPAuthenticationError,
    smtplib.SMTPRecipientsRefused,
    smtplib.SMTPSenderRefused,
    smtplib.SMTPNotSupportedError,
)

TRANSIENT_ERRORS = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    socket.timeout,
    TimeoutError,
    ConnectionError,
    socket.gaierror,
)

_PERMANENT_PATTERN = re.compile(r"auth|invalid.*recipient|user.*not.*found", re.IGNORECASE)
_TRANSIENT_PATTERN = re.compile(r"timed?\s?out|connection.*closed", re.IGNORECASE)


def is_permanent_error(error: Exception) -> bool:
    """Errors that a retry cannot fix: credentials and rejected addresses"""
    if isinstance(error, PERMANENT_ERRORS):
        return True
    return bool(_PERMANENT_PATTERN.search(str(error)))


def is_transient_error(error: Exception) -> bool:
    if is_permanent_error(error):
        return False
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    return bool(_TRANSIENT_PATTERN.search(str(error)))


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 10.0) -> float:
    """Delay after the given failed attempt (1-based): base * 2^(attempt-1), capped"""
    return min(base * (2 ** (attempt - 1)), cap)


class EmailChannelProvider(ChannelProvider):
    """
    SMTP email provider with retry.

    Transient failures (timeouts, dropped or refused connections) are retried
    with exponential backoff up to ``max_attempts``; permanent failures stop
    immediately. The blocking SMTP exchange runs in a worker thread.
    """

    def __init__(
        self,
        transport: Any,
        from_address: str,
        from_name: str = "ZentriBank Capital",
        max_attempts: int = 3,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        self.transport = transport
        self.from_address = from_address
        self.from_name = from_name
        self.max_attempts = max(1, max_attempts)
        self.sleep = sleep or asyncio.sleep
        self.logger = get_logger("zentri.notifications")

    def build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = ", ".join(email.to)
        message["Reply-To"] = self.from_address
        message["Subject"] = email.subject
        message["Message-ID"] = make_msgid(domain=self.from_address.split("@")[-1] or None)
        message["List-Unsubscribe"] = f"<mailto:{self.from_address}?subject=Unsubscribe>"
        for name, value in email.headers.items():
            message[name] = value
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")
        return message

    async def send(self, email: OutgoingEmail) -> DeliveryResult:
        message = self.build_message(email)
        last_error: Optional[Exception] = None
        attempt = 0

        while attempt < self.max_attempts:
            attempt += 1
            try:
                await asyncio.to_thread(self.transport.send, message, self.from_address, list(email.to))
                self.logger.info(f"Email sent (attempt {attempt}/{self.max_attempts}): {message['Message-ID']}")
                return DeliveryResult(
                    success=True,
                    recipients=list(email.to),
                    attempts=attempt,
                    message_id=message["Message-ID"]
                )
            except Exception as e:
                last_error = e
                transient = is_transient_error(e)
                log_action(
                    self.logger, "warning", f"Send attempt {attempt} failed: {str(e)[:200]}",
                    action="send_email",
                    extra={"error_type": type(e).__name__, "transient": transient}
                )
                if is_permanent_error(e):
                    self.logger.error("Permanent email error, not retrying")
                    break
                if transient and attempt < self.max_attempts:
                    await self.sleep(backoff_delay(attempt))
                    continue
                break

        self.logger.error(f"Email delivery failed: {last_error}")
        return DeliveryResult(
            success=False,
            recipients=list(email.to),
            attempts=attempt,
            message_id=f"FAILED-{int(time.time() * 1000)}",
            error=str(last_error)
        )


def status_label(status: Optional[str]) -> str:
    value = (status or "").lower()
    if value in ("approved", "completed"):
        return "Completed"
    if value == "pending_verification":
        return "Pending - Verification"
    if value == "rejected":
        return "Rejected"
    return "Pending"


def format_amount(amount: Any, currency: str = "USD") -> str:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        value = Decimal("0")
    if currency == "USD":
        return f"${value:,.2f}"
    return f"{value:,.2f} {currency}" if value >= 1 else f"{value.normalize():f} {currency}"


def signed_amount(transaction_type: str, amount: Any, currency: str = "USD") -> str:
    sign = "+" if is_credit(transaction_type) else "-" if is_debit(transaction_type) else ""
    return sign + format_amount(amount, currency)


class NotificationEngine:
    """Formats and sends customer transaction emails"""

    def __init__(self, provider: ChannelProvider, support_address: str = ""):
        self.provider = provider
        self.support_address = support_address
        self.logger = get_logger("zentri.notifications")

    def render_transaction_email(
        self,
        to: Union[str, List[str]],
        name: Optional[str],
        transaction: Dict[str, Any],
        subject: Optional[str] = None
    ) -> OutgoingEmail:
        recipients = [to] if isinstance(to, str) else list(to)
        recipients = [r for r in recipients if r]

        tx_type = str(transaction.get("type") or "deposit")
        currency = str(transaction.get("currency") or "USD")
        description = str(transaction.get("description") or tx_type)
        reference = str(transaction.get("reference") or transaction.get("id") or "")
        label = status_label(transaction.get("status"))
        amount_text = signed_amount(tx_type, transaction.get("amount", 0), currency)
        date = transaction.get("date") or datetime.now()
        date_text = date.strftime("%Y-%m-%d %H:%M") if isinstance(date, datetime) else str(date)
        account = str(transaction.get("accountType") or "checking")
        greeting = name or "Customer"

        rows = [
            ("Reference", reference),
            ("Description", description),
            ("Type", tx_type),
            ("Amount", amount_text),
            ("Status", label),
            ("Date", date_text),
            ("Account", account),
        ]
        if transaction.get("network"):
            rows.append(("Network", str(transaction["network"])))

        text = "\n".join(
            [f"{greeting},", "", f"A recent transaction on your account is now {label}.", ""]
            + [f"{key}: {value}" for key, value in rows]
            + ["", "If you did not authorize this activity, please contact support immediately."]
        )
        table = "".join(
            f"<tr><td style=\"padding:12px 0;color:#64748b;\">{escape(key)}</td>"
            f"<td style=\"padding:12px 0;color:#0f172a;\">{escape(value)}</td></tr>"
            for key, value in rows
        )
        support = f" at {escape(self.support_address)}" if self.support_address else ""
        html = (
            f"<html><body><h2>Hi {escape(greeting)},</h2>"
            f"<p>A recent transaction on your account is now <strong>{escape(label)}</strong>.</p>"
            f"<table style=\"border-collapse:collapse;width:100%;max-width:560px;\">{table}</table>"
            f"<p>If you did not authorize this activity, please contact support immediately{support}.</p>"
            f"</body></html>"
        )

        return OutgoingEmail(
            to=recipients,
            subject=subject or f"Transaction {label}: {description} {amount_text}",
            text=text,
            html=html,
            headers={
                "X-Transaction-Reference": reference,
                "X-Transaction-Type": tx_type,
                "X-Transaction-Status": label,
                "X-Priority": "2",
            }
        )

    async def send_transaction_email(
        self,
        to: Union[str, List[str]],
        name: Optional[str],
        transaction: Dict[str, Any],
        subject: Optional[str] = None
    ) -> DeliveryResult:
        """Send a transaction notice. Never raises."""
        try:
            email = self.render_transaction_email(to, name, transaction, subject)
            if not email.to:
                self.logger.warning("No recipients provided")
                return DeliveryResult(success=False, recipients=[], skipped=True)
            return await self.provider.send(email)
        except Exception as e:
            self.logger.exception(f"Transaction email failed: {e}")
            return DeliveryResult(success=False, recipients=[], error=str(e))


def create_notification_engine(config) -> NotificationEngine:
    """SMTP engine when mail is enabled, otherwise a logging engine"""
    if config.mail_enabled and config.smtp_host:
        transport = SMTPTransport(
            host=config.smtp_host,
            port=config.smtp_port,
            use_ssl=config.smtp_use_ssl,
            username=config.smtp_username,
            password=config.smtp_password,
            timeout=config.smtp_timeout
        )
        provider = EmailChannelProvider(
            transport,
            from_address=config.mail_from_address,
            from_name=config.mail_from_name,
            max_attempts=config.mail_max_attempts
        )
        return NotificationEngine(provider, support_address=config.mail_from_address)
    return NotificationEngine(LogChannelProvider(), support_address=config.mail_from_address)
