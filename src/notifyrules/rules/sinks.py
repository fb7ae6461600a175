"""
Intent Sinks.

Intent-only actions (CHANGE_BEHAVIOR, ADD_TO_FILTER, SET_PRIORITY, the
master switch toggles, LOG_EVENT) are never enforced by the engine. They
are recorded on the EvaluationResult and handed to an IntentSink so the
caller can observe them.

Sinks:
- LogIntentSink: Log each intent
- CollectingIntentSink: Keep intents in memory
- WebhookIntentSink: POST each intent as JSON to a URL
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from ..core.logging import get_logger
from .models import ActionType, IntentEvent

logger = get_logger(__name__)


class IntentSink(Protocol):
    """Receives intent events. Returns True if the event was accepted."""

    def emit(self, event: IntentEvent) -> bool: ...


def describe_intent(event: IntentEvent) -> str:
    """Human-readable line for an intent, e.g. 'Request to set priority: high - Slack'."""
    if event.action_type == ActionType.CHANGE_BEHAVIOR:
        return f"Request to change behavior to: {event.value} - {event.app_name}"
    if event.action_type == ActionType.ADD_TO_FILTER:
        return f"Request to add to filter: {event.value} - {event.app_name}"
    if event.action_type == ActionType.SET_PRIORITY:
        return f"Request to set priority: {event.value} - {event.app_name}"
    if event.action_type == ActionType.DISABLE_MASTER_SWITCH:
        return f"Request to disable master switch - {event.app_name}"
    if event.action_type == ActionType.ENABLE_MASTER_SWITCH:
        return f"Request to enable master switch - {event.app_name}"
    return f"{event.value} - {event.app_name}"


class LogIntentSink:
    """
    Log intent events.

    Useful as the default sink and for debugging rule behavior.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def emit(self, event: IntentEvent) -> bool:
        rule = f" [{event.rule_name}]" if event.rule_name else ""
        logger.log(self._level, f"Intent{rule}: {describe_intent(event)}")
        return True


class CollectingIntentSink:
    """Keep every intent event in a list."""

    def __init__(self) -> None:
        self.events: list[IntentEvent] = []

    def emit(self, event: IntentEvent) -> bool:
        self.events.append(event)
        return True

    def clear(self) -> None:
        self.events.clear()


class WebhookIntentSink:
    """
    POST intent events to an HTTP webhook.

    Payload is the event dict plus a "message" line. Delivery failures are
    logged and reported as False, never raised.

    Config:
        webhook_url: Target URL (required)
        headers: Extra request headers
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        webhook_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = webhook_url
        self._headers = headers or {}
        self._timeout = timeout
        self._client = client

    def _payload(self, event: IntentEvent) -> dict[str, Any]:
        payload = event.to_dict()
        payload["message"] = describe_intent(event)
        return payload

    def emit(self, event: IntentEvent) -> bool:
        """
        Deliver an intent event.

        Returns:
            True if the webhook accepted the event
        """
        if not self._url:
            logger.error("Webhook intent sink requires webhook_url")
            return False

        try:
            if self._client is not None:
                response = self._client.post(
                    self._url,
                    json=self._payload(event),
                    headers=self._headers,
                    timeout=self._timeout,
                )
            else:
                with httpx.Client() as client:
                    response = client.post(
                        self._url,
                        json=self._payload(event),
                        headers=self._headers,
                        timeout=self._timeout,
                    )
            response.raise_for_status()
            logger.debug(f"Webhook delivery succeeded for {event.action_type.name}")
            return True
        except Exception as e:
            logger.error(f"Webhook intent delivery failed: {e}")
            return False


class FanOutIntentSink:
    """Emit to several sinks; accepted if every sink accepted."""

    def __init__(self, sinks: list[IntentSink]) -> None:
        self._sinks = list(sinks)

    def emit(self, event: IntentEvent) -> bool:
        results = [sink.emit(event) for sink in self._sinks]
        return all(results)
