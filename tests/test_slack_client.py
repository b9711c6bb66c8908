"""Unit tests for the Slack WebClient wrapper."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nest_notifier.models import DeliveryReceipt  # noqa: E402
from nest_notifier.notifications.messages import RenderedMessage  # noqa: E402
from nest_notifier.slack_client import SlackClient  # noqa: E402

MESSAGE = RenderedMessage(text="Order 42", blocks=[{"type": "section"}])


class DummyWebClient:
    def __init__(self, post_response=None):
        self.calls = []
        self.post_response = post_response

    def chat_postMessage(self, **kwargs):
        self.calls.append(("post", kwargs))
        if self.post_response is not None:
            return self.post_response
        return {"ok": True, "channel": kwargs["channel"], "ts": "111.222"}

    def chat_update(self, **kwargs):
        self.calls.append(("update", kwargs))
        return {"ok": True}


def test_requires_token_or_client():
    with pytest.raises(ValueError):
        SlackClient()


def test_post_message_returns_receipt():
    dummy = DummyWebClient()
    client = SlackClient(client=dummy)

    receipt = client.post_message("C123", MESSAGE)

    assert receipt == DeliveryReceipt(channel_id="C123", message_ts="111.222")
    assert dummy.calls == [
        ("post", {"channel": "C123", "text": "Order 42", "blocks": [{"type": "section"}]}),
    ]
    assert client.client is dummy


def test_post_message_prefers_channel_reported_by_slack():
    dummy = DummyWebClient(post_response={"ok": True, "channel": "C999", "ts": "1.2"})

    receipt = SlackClient(client=dummy).post_message("general", MESSAGE)

    assert receipt == DeliveryReceipt(channel_id="C999", message_ts="1.2")


def test_post_message_without_ts_returns_none():
    dummy = DummyWebClient(post_response={"ok": True, "channel": "C123"})

    assert SlackClient(client=dummy).post_message("C123", MESSAGE) is None


def test_update_message_addresses_receipt():
    dummy = DummyWebClient()
    client = SlackClient(client=dummy)

    client.update_message(DeliveryReceipt(channel_id="C123", message_ts="123.456"), MESSAGE)

    assert dummy.calls[-1] == (
        "update",
        {"channel": "C123", "ts": "123.456", "text": "Order 42", "blocks": [{"type": "section"}]},
    )


def test_metadata_is_forwarded_only_when_given():
    dummy = DummyWebClient()
    client = SlackClient(client=dummy)
    metadata = {"event_type": "notifier_delivery", "event_payload": {"receipts": []}}
    receipt = DeliveryReceipt(channel_id="C123", message_ts="1.2")

    client.update_message(receipt, MESSAGE, metadata=metadata)
    client.update_message(receipt, MESSAGE)

    assert dummy.calls[0][1]["metadata"] == metadata
    assert "metadata" not in dummy.calls[1][1]
