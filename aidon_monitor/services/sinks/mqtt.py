# aidon_monitor/services/sinks/mqtt.py

from __future__ import annotations

import json

import paho.mqtt.client as mqtt

from aidon_monitor.config import MqttConfig
from aidon_monitor.models.errors import HanError
from aidon_monitor.models.reading import Reading


class MqttSink:
    """
    Republishes readings to an MQTT broker (retained, MQTT v5).

    Broker connectivity is paho's business: the client connects in the
    background and reconnects on its own. A publish while disconnected is
    logged and dropped.
    """

    name = "mqtt"

    def __init__(self, cfg: MqttConfig, log, client: mqtt.Client | None = None):
        self.cfg = cfg
        self.log = log
        self.client = client
        self.connected = False
        self._enabled = bool(cfg.enabled and cfg.host and cfg.topic)
        self._started = False

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._enabled

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.cfg.client_id,
            protocol=mqtt.MQTTv5,
        )
        if self.cfg.username:
            client.username_pw_set(self.cfg.username, self.cfg.password)
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if getattr(reason_code, "is_failure", False):
            self.log.error("[MQTT] Connection refused: %s", reason_code)
            return
        self.connected = True
        self.log.info("[MQTT] Connected to broker %s:%s", self.cfg.host, self.cfg.port)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self.connected = False
        self.log.warning("[MQTT] Disconnected from broker: %s", reason_code)

    def start(self) -> bool:
        if not self._enabled:
            self.log.debug("[MQTT] Disabled; not connecting")
            return False
        if self._started:
            return True
        if self.client is None:
            self.client = self._build_client()
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        try:
            self.client.connect_async(self.cfg.host, self.cfg.port, keepalive=self.cfg.keepalive)
        except (OSError, ValueError) as exc:
            self.log.error("[MQTT] Failed to connect to MQTT broker: %s", exc)
            return False
        self.client.loop_start()
        self._started = True
        return True

    # ------------------------------------------------------------------
    def handle_reading(self, reading: Reading) -> None:
        if not self._started:
            self.log.debug("[MQTT] Not started; dropping reading %s", reading.meter_datetime)
            return
        message = json.dumps(reading.to_payload())
        info = self.client.publish(self.cfg.topic, message, qos=self.cfg.qos, retain=self.cfg.retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.log.warning("[MQTT] publish() to %s failed: %s", self.cfg.topic, mqtt.error_string(info.rc))
            return
        self.log.debug('[MQTT] publish(): topic: "%s", message: "%s"', self.cfg.topic, message)

    def handle_error(self, error: HanError) -> None:
        # Errors are not republished; the log sink reports them.
        self.log.debug("[MQTT] Not forwarding %s", error.kind)

    def close(self) -> None:
        if not self._started:
            return
        self._started = False
        self.client.loop_stop()
        self.client.disconnect()
        self.log.debug("[MQTT] Connection closed to broker %s", self.cfg.host)
