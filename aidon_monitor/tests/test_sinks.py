# aidon_monitor/tests/test_sinks.py

import json
import logging
from types import SimpleNamespace

import paho.mqtt.client as mqtt
import requests

from aidon_monitor.config import MqttConfig, WebhookConfig
from aidon_monitor.models.errors import FrameTimeout
from aidon_monitor.models.profile import AIDON_7534
from aidon_monitor.services.field_decoder import FieldDecoder
from aidon_monitor.services.sink_manager import SinkManager
from aidon_monitor.services.sinks.log_sink import LogSink
from aidon_monitor.services.sinks.mqtt import MqttSink
from aidon_monitor.services.sinks.webhook import WebhookSink
from aidon_monitor.tests.fake_source import RecordingSink
from aidon_monitor.tests.frames import DOCUMENTED_FRAME

LOG = logging.getLogger("aidon.sink-test")


def _reading():
    return FieldDecoder(AIDON_7534).decode(DOCUMENTED_FRAME)


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code


class FakeSession:
    def __init__(self, status_code=200, exc=None):
        self.status_code = status_code
        self.exc = exc
        self.calls = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc:
            raise self.exc
        return FakeResponse(self.status_code)

    def close(self):
        self.closed = True


class FakeMqttClient:
    def __init__(self, rc=mqtt.MQTT_ERR_SUCCESS):
        self.rc = rc
        self.published = []
        self.connected_to = None
        self.looping = False
        self.disconnected = False
        self.on_connect = None
        self.on_disconnect = None

    def connect_async(self, host, port, keepalive=60):
        self.connected_to = (host, port, keepalive)

    def loop_start(self):
        self.looping = True

    def loop_stop(self):
        self.looping = False

    def disconnect(self):
        self.disconnected = True

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append({"topic": topic, "payload": payload, "qos": qos, "retain": retain})
        return SimpleNamespace(rc=self.rc)


class ExplodingSink(RecordingSink):
    name = "exploding"

    def handle_reading(self, reading):
        raise RuntimeError("boom")

    def handle_error(self, error):
        raise RuntimeError("boom")

    def close(self):
        raise RuntimeError("boom")


# ---------------------------------------------------------------------------
# SinkManager
# ---------------------------------------------------------------------------

def test_manager_isolates_failing_sink():
    good = RecordingSink()
    manager = SinkManager([ExplodingSink(), good], LOG)
    reading = _reading()

    manager.handle_reading(reading)
    manager.handle_error(FrameTimeout("Timeout, buffer: /ADN9"))
    manager.close()

    assert good.readings == [reading]
    assert good.kinds == ["FrameTimeout"]
    assert good.closed
    assert manager.readings == 1
    assert manager.errors == 1


def test_manager_skips_disabled_sinks():
    webhook = WebhookSink(WebhookConfig(enabled=False), LOG, session=FakeSession())
    mqtt_sink = MqttSink(MqttConfig(enabled=False), LOG, client=FakeMqttClient())
    manager = SinkManager([LogSink(LOG), webhook, mqtt_sink], LOG)
    assert [s.name for s in manager.sinks] == ["log"]


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

def test_webhook_posts_payload():
    session = FakeSession()
    sink = WebhookSink(WebhookConfig(enabled=True, url="http://hub.local/meter", timeout=3.0), LOG, session=session)

    sink.handle_reading(_reading())

    assert len(session.calls) == 1
    call = session.calls[0]
    assert call["url"] == "http://hub.local/meter"
    assert call["timeout"] == 3.0
    assert call["json"]["cumulativeActiveEnergyIn"] == 5996.149


def test_webhook_errors_only_when_requested():
    session = FakeSession()
    cfg = WebhookConfig(enabled=True, url="http://hub.local/meter")
    sink = WebhookSink(cfg, LOG, session=session)

    sink.handle_error(FrameTimeout("Timeout, buffer: x"))
    assert session.calls == []

    cfg.send_errors = True
    sink.handle_error(FrameTimeout("Timeout, buffer: x"))
    assert session.calls[0]["json"] == {"error": {"kind": "FrameTimeout", "message": "Timeout, buffer: x"}}


def test_webhook_swallows_transport_failures():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    sink = WebhookSink(WebhookConfig(enabled=True, url="http://hub.local/meter"), LOG, session=session)
    sink.handle_reading(_reading())
    assert len(session.calls) == 1

    sink.close()
    assert session.closed


def test_webhook_http_error_is_not_fatal():
    session = FakeSession(status_code=503)
    sink = WebhookSink(WebhookConfig(enabled=True, url="http://hub.local/meter"), LOG, session=session)
    assert sink._post({"x": 1}) is False


# ---------------------------------------------------------------------------
# MQTT
# ---------------------------------------------------------------------------

def test_mqtt_publishes_retained_json():
    client = FakeMqttClient()
    sink = MqttSink(MqttConfig(enabled=True, host="broker", port=1884), LOG, client=client)
    assert sink.start()
    assert client.connected_to == ("broker", 1884, 60)
    assert client.looping

    sink.handle_reading(_reading())

    assert len(client.published) == 1
    message = client.published[0]
    assert message["topic"] == "energy/realtimedata"
    assert message["retain"] is True
    assert message["qos"] == 0
    payload = json.loads(message["payload"])
    assert payload["meterDateTime"] == "230615120000"
    assert payload["l1RmsVoltage"] == 236.3


def test_mqtt_failed_publish_is_not_fatal():
    client = FakeMqttClient(rc=mqtt.MQTT_ERR_NO_CONN)
    sink = MqttSink(MqttConfig(enabled=True), LOG, client=client)
    sink.start()
    sink.handle_reading(_reading())
    assert len(client.published) == 1


def test_mqtt_does_not_forward_errors():
    client = FakeMqttClient()
    sink = MqttSink(MqttConfig(enabled=True), LOG, client=client)
    sink.start()
    sink.handle_error(FrameTimeout("Timeout, buffer: x"))
    assert client.published == []


def test_mqtt_not_started_drops_readings():
    client = FakeMqttClient()
    sink = MqttSink(MqttConfig(enabled=False), LOG, client=client)
    assert sink.start() is False
    sink.handle_reading(_reading())
    assert client.published == []


def test_mqtt_close_stops_loop():
    client = FakeMqttClient()
    sink = MqttSink(MqttConfig(enabled=True), LOG, client=client)
    sink.start()
    sink.close()
    assert not client.looping
    assert client.disconnected


def test_mqtt_connection_callbacks_track_state():
    sink = MqttSink(MqttConfig(enabled=True), LOG, client=FakeMqttClient())
    sink._on_connect(None, None, None, SimpleNamespace(is_failure=False))
    assert sink.connected
    sink._on_disconnect(None, None, None, SimpleNamespace(is_failure=True))
    assert not sink.connected


def test_log_sink_handles_both_streams():
    sink = LogSink(LOG)
    sink.handle_reading(_reading())
    sink.handle_error(FrameTimeout("Timeout, buffer: x"))
    sink.close()
