"""
Delivery channels and the dispatcher that drives them.

Channels know how to hand a message to one provider:
- ConsoleEmailChannel / ConsoleSMSChannel: log the message (development, tests)
- ResendEmailChannel: transactional email through the Resend HTTP API

Channels raise on failure. The DeliveryDispatcher is the boundary that turns
every outcome, including exceptions and timeouts, into a DeliveryResult, so the
evaluation loop always has something to write to the delivery log.

Design decisions:
- Each channel sends on its own small worker pool, so a hung provider call is
  bounded by a timeout and cannot starve the other channels
- Channels are registered by name; adding a channel does not touch the evaluator
- Console channels track sent messages for test assertions and can simulate failures
"""

import logging
import random
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol

import httpx

from notifier.errors import ConfigurationError, DeliveryError
from pantry.config import Settings
from pantry.models import DeliveryStatus, utcnow

logger = logging.getLogger("notifications")


class ChannelType(str, Enum):
    """Supported delivery channels."""
    EMAIL = "email"
    SMS = "sms"


RECIPIENT_LABELS = {
    ChannelType.EMAIL.value: "email address",
    ChannelType.SMS.value: "phone number",
}


class Channel(Protocol):
    """A transport that can deliver one message to one recipient."""

    def send(self, to: str, subject: str, body: str) -> dict[str, Any]:
        """Send and return provider details; raise on failure."""
        ...


@dataclass
class SentMessage:
    """A message accepted by a console channel."""
    recipient: str
    subject: str
    body: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class DeliveryResult:
    """
    Result of one delivery attempt.

    details carries the raw provider response on success or the error on failure.
    """
    channel: str
    recipient: Optional[str]
    status: DeliveryStatus
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def success(self) -> bool:
        return self.status == DeliveryStatus.SENT

    def __str__(self) -> str:
        mark = "✓" if self.success else "✗"
        return f"{mark} {self.channel.upper()} to {self.recipient}: {self.status.value}"


# =============================================================================
# Console channels
# =============================================================================

class ConsoleEmailChannel:
    """
    Mock email channel.

    Logs email sends and tracks them for test assertions.
    Can simulate failures for testing error handling.
    """

    def __init__(self, fail_rate: float = 0.0):
        """
        Initialize the email channel.

        Args:
            fail_rate: Probability of send failure (0.0 to 1.0), for testing.
        """
        self.fail_rate = fail_rate
        self.sent_messages: list[SentMessage] = []

    def send(self, to: str, subject: str, body: str) -> dict[str, Any]:
        if random.random() < self.fail_rate:
            raise DeliveryError("Simulated email delivery failure")

        message = SentMessage(recipient=to, subject=subject, body=body)
        self.sent_messages.append(message)
        logger.info(f"[EMAIL] To: {to} | Subject: {subject}")
        logger.debug(f"[EMAIL BODY] {body}")
        return {"provider": "console", "recipient": to}

    def get_sent_count(self) -> int:
        return len(self.sent_messages)

    def find_message_to(self, recipient: str) -> Optional[SentMessage]:
        for msg in self.sent_messages:
            if msg.recipient == recipient:
                return msg
        return None


class ConsoleSMSChannel:
    """
    Mock SMS channel.

    SMS messages are typically shorter than emails; long ones are logged with a warning.
    """

    MAX_LENGTH = 160

    def __init__(self, fail_rate: float = 0.0):
        self.fail_rate = fail_rate
        self.sent_messages: list[SentMessage] = []

    def send(self, to: str, subject: str, body: str) -> dict[str, Any]:
        if len(body) > self.MAX_LENGTH:
            logger.warning(
                f"[SMS] Message length ({len(body)}) exceeds {self.MAX_LENGTH} chars, "
                "may be split into multiple messages"
            )

        if random.random() < self.fail_rate:
            raise DeliveryError("Simulated SMS delivery failure")

        self.sent_messages.append(SentMessage(recipient=to, subject=subject, body=body))
        logger.info(f"[SMS] To: {to} | Message: {body}")
        return {"provider": "console", "recipient": to}

    def get_sent_count(self) -> int:
        return len(self.sent_messages)


# =============================================================================
# Resend
# =============================================================================

class ResendEmailChannel:
    """
    Transactional email through the Resend HTTP API.

    A missing API key is reported per send as a ConfigurationError rather than
    at construction, so the service still starts and the failure lands in the
    delivery log.
    """

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.client = client or httpx.Client(timeout=timeout)

    def send(self, to: str, subject: str, body: str) -> dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY not configured")

        try:
            response = self.client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": body,
                },
            )
        except httpx.HTTPError as e:
            raise DeliveryError(f"Resend request failed: {e}") from e

        if response.is_error:
            raise DeliveryError(
                f"Resend returned HTTP {response.status_code}",
                details={"status_code": response.status_code, "body": response.text},
            )

        logger.info(f"[EMAIL] To: {to} | Subject: {subject} | via Resend")
        return response.json()

    def close(self) -> None:
        self.client.close()


# =============================================================================
# Dispatcher
# =============================================================================

class DeliveryDispatcher:
    """
    Facade over the registered channels.

    deliver() never raises: provider errors, configuration errors and timeouts
    all come back as a failed DeliveryResult with the cause in details.

    Sends that outlive the timeout keep their worker busy until the provider
    returns, so a channel's own client timeout should be shorter than ours.

    Example:
        dispatcher = DeliveryDispatcher(timeout=5.0)
        dispatcher.register("email", ConsoleEmailChannel())
        result = dispatcher.deliver("email", "a@example.com", "Subject", "<p>Body</p>")
    """

    def __init__(self, timeout: float = 10.0, max_workers: int = 4):
        self.timeout = timeout
        self._channels: dict[str, Channel] = {}
        self.max_workers = max_workers
        self._executors: dict[str, ThreadPoolExecutor] = {}

    def register(self, name: str, channel: Channel) -> None:
        self._channels[name] = channel
        if name not in self._executors:
            self._executors[name] = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=f"delivery-{name}",
            )

    def get_channel(self, name: str) -> Optional[Channel]:
        return self._channels.get(name)

    @property
    def available_channels(self) -> list[str]:
        return list(self._channels)

    def deliver(self, channel: str, recipient: Optional[str], subject: str, body: str) -> DeliveryResult:
        """
        Send via a named channel.

        Args:
            channel: Registered channel name ("email", "sms")
            recipient: Email address or phone number
            subject: Subject line (ignored by channels without one)
            body: Message content

        Returns:
            DeliveryResult, sent or failed
        """
        transport = self._channels.get(channel)
        if transport is None:
            return self._failed(channel, recipient, {"error": f"Unknown channel: {channel}"})
        if not recipient:
            label = RECIPIENT_LABELS.get(channel, "recipient")
            return self._failed(channel, recipient, {"error": f"No {label} on profile"})

        future = self._executors[channel].submit(transport.send, recipient, subject, body)
        try:
            details = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            return self._failed(
                channel, recipient,
                {"error": f"Delivery timed out after {self.timeout}s", "timeout": True},
            )
        except ConfigurationError as e:
            return self._failed(channel, recipient, {"error": str(e), "type": "configuration"})
        except DeliveryError as e:
            return self._failed(channel, recipient, {"error": str(e), **e.details})
        except Exception as e:
            logger.exception(f"Unexpected error from {channel} channel")
            return self._failed(channel, recipient, {"error": str(e), "type": type(e).__name__})

        return DeliveryResult(
            channel=channel,
            recipient=recipient,
            status=DeliveryStatus.SENT,
            details=details if isinstance(details, dict) else {"response": details},
        )

    def _failed(self, channel: str, recipient: Optional[str], details: dict[str, Any]) -> DeliveryResult:
        logger.error(f"[{channel.upper()} FAILED] To: {recipient} | Error: {details.get('error')}")
        return DeliveryResult(
            channel=channel,
            recipient=recipient,
            status=DeliveryStatus.FAILED,
            details=details,
        )

    def close(self) -> None:
        """Stop the worker pools without waiting for hung sends."""
        for executor in self._executors.values():
            executor.shutdown(wait=False, cancel_futures=True)
        for transport in self._channels.values():
            close = getattr(transport, "close", None)
            if close is not None:
                close()


def build_dispatcher(settings: Settings) -> DeliveryDispatcher:
    """
    Create a dispatcher with the channels the settings ask for.

    Raises:
        ConfigurationError: If the email provider name is unknown
    """
    dispatcher = DeliveryDispatcher(timeout=settings.delivery_timeout_seconds)

    if settings.email_provider == "resend":
        dispatcher.register(
            ChannelType.EMAIL.value,
            ResendEmailChannel(
                api_key=settings.resend_api_key,
                sender=settings.email_from,
                api_url=settings.resend_api_url,
                timeout=settings.delivery_timeout_seconds,
            ),
        )
    elif settings.email_provider == "console":
        dispatcher.register(ChannelType.EMAIL.value, ConsoleEmailChannel())
    else:
        raise ConfigurationError(f"Unknown email provider: {settings.email_provider}")

    if settings.sms_enabled:
        dispatcher.register(ChannelType.SMS.value, ConsoleSMSChannel())

    return dispatcher
