import pytest

from aidon_monitor.config import Config, load_defaults

CONF = """
[serial]
device = /dev/ttyUSB0
baud_rate = 9600
read_timeout = 0.5

[profile]
name = aidon-7534
identifier = /ADN9 7535
timezone = Europe/Oslo
max_buffer_bytes = 4096

[timing]
frame_timeout_ms = 1500
watchdog_timeout_ms = 20000

[simulation]
interval_ms = 2500

[mqtt]
enabled = true
host = broker.lan
port = 1884
topic = home/meter   # retained
qos = 1
retain = false
username = meter
password = secret

[webhook]
enabled = true
url = http://hub.local/meter
timeout = 2.5
send_errors = true

[logging]
console_level = DEBUG
console_quiet = true
debug_modules = paho, urllib3
"""


def _write(tmp_path, text):
    conf_path = tmp_path / "aidon_monitor.conf"
    conf_path.write_text(text)
    return str(conf_path)


def test_full_config(tmp_path):
    cfg = Config.load(_write(tmp_path, CONF))

    assert cfg.serial.device == "/dev/ttyUSB0"
    assert cfg.serial.baud_rate == 9600
    assert cfg.serial.read_timeout == 0.5

    assert cfg.profile.timezone == "Europe/Oslo"
    assert cfg.profile.max_buffer_bytes == 4096
    profile = cfg.profile.resolve()
    assert profile.identifier == b"/ADN9 7535"
    assert profile.frame_length == 705

    assert cfg.timing.frame_timeout_ms == 1500
    assert cfg.timing.watchdog_timeout_ms == 20000
    assert cfg.simulation.interval_ms == 2500

    assert cfg.mqtt.enabled is True
    assert cfg.mqtt.host == "broker.lan"
    assert cfg.mqtt.port == 1884
    assert cfg.mqtt.topic == "home/meter"
    assert cfg.mqtt.qos == 1
    assert cfg.mqtt.retain is False
    assert cfg.mqtt.username == "meter"

    assert cfg.webhook.url == "http://hub.local/meter"
    assert cfg.webhook.timeout == 2.5
    assert cfg.webhook.send_errors is True

    assert cfg.logging.console_level == "DEBUG"
    assert cfg.logging.console_quiet is True
    assert cfg.logging.debug_modules == ["paho", "urllib3"]


def test_empty_config_matches_defaults(tmp_path):
    cfg = Config.load(_write(tmp_path, "[serial]\n"))
    defaults = load_defaults()

    assert cfg == defaults
    assert cfg.serial.device == "/dev/serial0"
    assert cfg.serial.baud_rate == 115200
    assert cfg.timing.frame_timeout_ms == 2000
    assert cfg.timing.watchdog_timeout_ms == 11000
    assert cfg.simulation.interval_ms == 10000
    assert cfg.mqtt.topic == "energy/realtimedata"
    assert cfg.mqtt.retain is True
    assert cfg.profile.resolve().identifier == b"/ADN9 7534"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.load(str(tmp_path / "nope.conf"))


def test_unknown_profile_is_rejected(tmp_path):
    with pytest.raises(ValueError, match="Unknown meter profile"):
        Config.load(_write(tmp_path, "[profile]\nname = kamstrup-162\n"))


def test_invalid_qos_is_rejected(tmp_path):
    with pytest.raises(ValueError, match="qos"):
        Config.load(_write(tmp_path, "[mqtt]\nqos = 3\n"))


def test_non_positive_timeout_is_rejected(tmp_path):
    with pytest.raises(ValueError, match="frame_timeout_ms"):
        Config.load(_write(tmp_path, "[timing]\nframe_timeout_ms = 0\n"))


def test_identifier_must_start_with_header_marker(tmp_path):
    with pytest.raises(ValueError, match="header marker '/ADN9'"):
        Config.load(_write(tmp_path, "[profile]\nidentifier = ADN9 7534\n"))
