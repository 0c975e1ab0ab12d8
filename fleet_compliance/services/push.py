# fleet_compliance/services/push.py
"""
Web push delivery.

The job only cares about a three-way outcome per subscription: delivered,
gone for good (the browser unsubscribed), or failed for some other reason.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests
from pywebpush import WebPushException, webpush

from .errors import ConfigurationError

PERMANENT_STATUS_CODES = {404, 410}


class DeliveryOutcome(Enum):
    SENT = "sent"
    GONE = "gone"
    FAILED = "failed"


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    url: str = "/"

    def to_json(self) -> str:
        return json.dumps({
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "data": {"url": self.url},
        })


@dataclass(frozen=True)
class DeliveryResult:
    subscription_id: int
    outcome: DeliveryOutcome
    status_code: Optional[int] = None
    error: Optional[str] = None


def outcome_for_status(status_code: Optional[int]) -> DeliveryOutcome:
    if status_code in PERMANENT_STATUS_CODES:
        return DeliveryOutcome.GONE
    return DeliveryOutcome.FAILED


class WebPushProvider:
    """Sends one message to one subscription through pywebpush (VAPID signed)."""

    def __init__(self, vapid_private_key: str, vapid_subject: str, ttl: int = 3600):
        if not vapid_private_key:
            raise ConfigurationError("Missing VAPID private key")
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl

    @classmethod
    def from_config(cls, config) -> "WebPushProvider":
        return cls(config.get("VAPID_PRIVATE_KEY"), config.get("VAPID_SUBJECT"))

    def send(self, subscription, message: PushMessage) -> DeliveryResult:
        try:
            webpush(
                subscription_info=subscription.to_subscription_info(),
                data=message.to_json(),
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims dict, so never share it between calls
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            return DeliveryResult(subscription.id, outcome_for_status(status), status, str(e))
        except requests.RequestException as e:
            return DeliveryResult(subscription.id, DeliveryOutcome.FAILED, None, str(e))
        return DeliveryResult(subscription.id, DeliveryOutcome.SENT)
