"""Application entry point for Nest Notifier."""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

from flask import Flask, Response, jsonify, request
from slack_sdk import WebClient
import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars
from werkzeug.exceptions import HTTPException, MethodNotAllowed

from nest_notifier.actions import (
    InteractionEvent,
    decode_interaction,
    parse_interaction_payload,
)
from nest_notifier.airtable_client import AirtableClient
from nest_notifier.config import AppSettings, get_settings
from nest_notifier.logging_config import configure_logging
from nest_notifier.models import (
    ActionDecodeError,
    AuthenticationError,
    DeliveryReceipt,
    DeliveryResult,
    PayloadValidationError,
)
from nest_notifier.notifications import parse_notification_request
from nest_notifier.notifications.delivery import (
    publish_notification,
    resolve_rewrite_targets,
    rewrite_messages,
)
from nest_notifier.notifications.messages import (
    build_acknowledged_message,
    describe_outcome,
    render_notification,
)
from nest_notifier.records import apply_button_update
from nest_notifier.security import (
    SLACK_SIGNATURE_HEADER,
    SLACK_TIMESTAMP_HEADER,
    WEBHOOK_SECRET_HEADER,
    verify_slack_request,
    verify_webhook_secret,
)
from nest_notifier.slack_client import SlackClient

WEBHOOK_PROCESSED = "Webhook processed"
WEBHOOK_FAILED = "Error processing webhook"
INTERACTION_HANDLED = "Interaction handled"
METHOD_NOT_ALLOWED = "Method not allowed"


def _create_slack_client(settings: AppSettings) -> SlackClient:
    """Build the Slack client shared by every request."""

    return SlackClient(client=WebClient(token=settings.bot_token))


def _create_airtable_client(settings: AppSettings) -> AirtableClient:
    return AirtableClient(api_key=settings.airtable_api_key, api_url=settings.airtable_api_url)


def _text_response(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _handle_notification(settings: AppSettings, slack_client: SlackClient) -> Response:
    """Authenticate, render and fan out one notification.

    Once the body is accepted the answer is 200 even if some channels failed;
    a 500 would make the automation resend to channels that already got it.
    """

    log = structlog.get_logger()

    try:
        verify_webhook_secret(
            configured=settings.webhook_secret,
            supplied=request.headers.get(WEBHOOK_SECRET_HEADER),
        )
    except AuthenticationError as exc:
        log.warning("notification_unauthorised", reason=str(exc))
        return _text_response("Unauthorized", 401)

    try:
        notification = parse_notification_request(request.get_data(as_text=True))
    except PayloadValidationError as exc:
        log.warning("notification_invalid", error=str(exc))
        return _text_response(str(exc), 400)

    record, config = notification.record, notification.config
    log = log.bind(record_id=record.id)
    log.info("notification_received", channel_count=len(config.channel_ids))

    try:
        message = render_notification(record, config)
        report = publish_notification(
            slack_client,
            message,
            config.channel_ids,
            sync_all_channels=settings.sync_all_channels,
        )
    except Exception:
        log.exception("notification_failed")
        return _text_response(WEBHOOK_FAILED, 500)

    if report.failures:
        log.warning(
            "notification_partially_delivered",
            failed=[result.target for result in report.failures],
        )
    return _text_response(WEBHOOK_PROCESSED, 200)


def _process_interaction(
    event: InteractionEvent,
    *,
    settings: AppSettings,
    slack_client: SlackClient,
    airtable: AirtableClient,
) -> list[DeliveryResult]:
    """Apply the clicked button's update, then rewrite every copy of the message."""

    results: list[DeliveryResult] = []
    update = apply_button_update(
        airtable,
        event.context,
        default_base_id=settings.airtable_base_id,
        default_table_id=settings.airtable_table_id,
    )
    if update is not None:
        results.append(update)

    acknowledged = build_acknowledged_message(
        event.origin_message,
        outcome=describe_outcome(event.context),
        user_name=event.acting_user_name,
    )
    origin = DeliveryReceipt(channel_id=event.origin_channel_id, message_ts=event.origin_message_ts)
    targets = resolve_rewrite_targets(origin, event.origin_message)
    metadata = event.origin_message.get("metadata") if len(targets) > 1 else None
    results.extend(rewrite_messages(slack_client, acknowledged, targets, metadata=metadata))
    return results


def _handle_interaction(
    settings: AppSettings,
    slack_client: SlackClient,
    airtable: AirtableClient,
) -> Response:
    """Verify a Slack click and process it.

    Any signed request is answered with 200, whatever happens afterwards, so
    Slack never retries a click.
    """

    log = structlog.get_logger()
    raw_body = request.get_data(as_text=True)

    try:
        verify_slack_request(
            signing_secret=settings.signing_secret,
            timestamp=request.headers.get(SLACK_TIMESTAMP_HEADER, ""),
            body=raw_body,
            signature=request.headers.get(SLACK_SIGNATURE_HEADER, ""),
            tolerance=settings.signature_tolerance,
        )
    except AuthenticationError as exc:
        log.warning("interaction_unauthorised", reason=str(exc))
        return _text_response("Invalid signature", 401)

    try:
        payload = parse_interaction_payload(request.form.get("payload"))
        event = decode_interaction(payload)
    except ActionDecodeError as exc:
        log.error("interaction_decode_failed", error=str(exc))
        return _text_response(INTERACTION_HANDLED, 200)

    if event is None:
        log.info("interaction_ignored", interaction_type=payload.get("type"))
        return _text_response(INTERACTION_HANDLED, 200)

    log = log.bind(
        record_id=event.context.record_id,
        control_id=event.control_id,
        user=event.acting_user_name,
        channel=event.origin_channel_id,
    )
    log.info("interaction_received")

    try:
        results = _process_interaction(
            event,
            settings=settings,
            slack_client=slack_client,
            airtable=airtable,
        )
    except Exception:
        log.exception("interaction_failed")
        return _text_response(INTERACTION_HANDLED, 200)

    failures = [result.target for result in results if not result.ok]
    log.info("interaction_processed", failed=failures)
    return _text_response(INTERACTION_HANDLED, 200)


def _register_error_handlers(flask_app: Flask) -> None:
    """Register plain-text 405 handling and a JSON handler for unexpected errors."""

    @flask_app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(_error: MethodNotAllowed):
        return _text_response(METHOD_NOT_ALLOWED, 405)

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error
        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


_LOGGING_CONFIGURED = False


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def create_app() -> Flask:
    """Create and configure the Flask application."""

    global _LOGGING_CONFIGURED
    settings = get_settings()
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True

    slack_client = _create_slack_client(settings)
    airtable = _create_airtable_client(settings)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.logger.setLevel("INFO")

    _register_error_handlers(flask_app)

    @flask_app.route("/", methods=["POST"], provide_automatic_options=False)
    def webhook():
        trace_id = str(uuid4())
        bind_contextvars(trace_id=trace_id)
        try:
            if request.headers.get(SLACK_SIGNATURE_HEADER):
                return _handle_interaction(settings, slack_client, airtable)
            return _handle_notification(settings, slack_client)
        finally:
            unbind_contextvars("trace_id")

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        try:
            get_settings()
            health["config"] = "valid"
        except Exception as exc:  # pragma: no cover - settings are validated at startup
            health["config"] = "invalid"
            health["config_error"] = str(exc)
            health["ok"] = False

        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=True)
