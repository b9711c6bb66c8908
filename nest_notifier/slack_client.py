"""Slack Web API calls used to deliver and edit notifier messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from slack_sdk import WebClient

from nest_notifier.models import DeliveryReceipt

if TYPE_CHECKING:  # pragma: no cover
    from nest_notifier.notifications.messages import RenderedMessage


class SlackClient:
    """Post and edit rendered notifications through a ``WebClient``.

    Only ``chat.postMessage`` and ``chat.update`` are needed; tests inject a
    stand-in exposing those two methods.
    """

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        return self._client

    def post_message(
        self,
        channel_id: str,
        message: "RenderedMessage",
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> DeliveryReceipt | None:
        """Post *message* to *channel_id*.

        Returns the receipt Slack reports for the new message, or ``None``
        when the response carries no timestamp to address it by later.
        """

        response = self._client.chat_postMessage(
            channel=channel_id, **message.as_payload(), **_metadata_kwargs(metadata)
        )
        ts = response.get("ts")
        if not ts:
            return None
        return DeliveryReceipt(channel_id=response.get("channel") or channel_id, message_ts=ts)

    def update_message(
        self,
        receipt: DeliveryReceipt,
        message: "RenderedMessage",
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any]:
        """Replace the message addressed by *receipt* with *message*."""

        return self._client.chat_update(
            channel=receipt.channel_id,
            ts=receipt.message_ts,
            **message.as_payload(),
            **_metadata_kwargs(metadata),
        )


def _metadata_kwargs(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    # Omitted entirely when absent; an explicit None would clear existing metadata.
    return {} if metadata is None else {"metadata": dict(metadata)}
