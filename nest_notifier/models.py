"""Error types and request-scoped delivery results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal


class NotifierError(Exception):
    """Base class for errors raised by the notifier."""


class AuthenticationError(NotifierError):
    """Raised when a shared secret or Slack signature does not check out."""


class PayloadValidationError(NotifierError):
    """Raised when an inbound notification body is malformed."""


class ActionDecodeError(NotifierError):
    """Raised when a button's encoded context cannot be decoded."""


class ConfigurationError(NotifierError, RuntimeError):
    """Raised when required settings are missing or invalid."""


class DeliveryError(NotifierError):
    """Describes a single failed outbound call."""

    def __init__(self, operation: str, target: str, reason: str) -> None:
        super().__init__(f"{operation} failed for {target}: {reason}")
        self.operation = operation
        self.target = target
        self.reason = reason


Operation = Literal["post_message", "attach_metadata", "update_message", "update_record"]


@dataclass(frozen=True)
class DeliveryReceipt:
    """Address of a posted Slack message, usable for later edits."""

    channel_id: str
    message_ts: str

    def as_dict(self) -> Dict[str, str]:
        return {"channel_id": self.channel_id, "message_ts": self.message_ts}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryReceipt":
        channel_id = data.get("channel_id")
        message_ts = data.get("message_ts")
        if not isinstance(channel_id, str) or not isinstance(message_ts, str):
            raise ValueError("Receipt requires string channel_id and message_ts")
        return cls(channel_id=channel_id, message_ts=message_ts)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one outbound call: a receipt on success or an error."""

    operation: Operation
    target: str
    receipt: DeliveryReceipt | None = None
    error: DeliveryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls, operation: Operation, target: str, receipt: DeliveryReceipt | None = None
    ) -> "DeliveryResult":
        return cls(operation=operation, target=target, receipt=receipt)

    @classmethod
    def failure(cls, operation: Operation, target: str, reason: str) -> "DeliveryResult":
        return cls(operation=operation, target=target, error=DeliveryError(operation, target, reason))


@dataclass
class FanoutReport:
    """Collected results of posting one message to several channels."""

    results: List[DeliveryResult] = field(default_factory=list)

    @property
    def receipts(self) -> List[DeliveryReceipt]:
        return [
            result.receipt
            for result in self.results
            if result.ok and result.operation == "post_message" and result.receipt is not None
        ]

    @property
    def failures(self) -> List[DeliveryResult]:
        return [result for result in self.results if not result.ok]
