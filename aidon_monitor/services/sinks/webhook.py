# aidon_monitor/services/sinks/webhook.py

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from aidon_monitor.config import WebhookConfig
from aidon_monitor.models.errors import HanError
from aidon_monitor.models.reading import Reading


class WebhookSink:
    """POSTs each reading as JSON to an HTTP endpoint."""

    name = "webhook"

    def __init__(self, cfg: WebhookConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.cfg.enabled and self.cfg.url)

    def _post(self, payload: Dict[str, Any]) -> bool:
        if not self.enabled:
            self.log.debug("[Webhook] Disabled; skipping post")
            return False
        try:
            resp = self.session.post(self.cfg.url, json=payload, timeout=self.cfg.timeout)
        except requests.RequestException as exc:
            self.log.warning("[Webhook] POST to %s failed: %s", self.cfg.url, exc)
            return False

        if resp.status_code >= 300:
            self.log.warning("[Webhook] %s returned HTTP %s", self.cfg.url, resp.status_code)
            return False
        return True

    def handle_reading(self, reading: Reading) -> None:
        self._post(reading.to_payload())

    def handle_error(self, error: HanError) -> None:
        if self.cfg.send_errors:
            self._post({"error": error.as_dict()})

    def close(self) -> None:
        self.session.close()
