# aidon_monitor/config.py
from dataclasses import dataclass, field
from pathlib import Path
import configparser

from .models.profile import DeviceProfile, get_profile


@dataclass
class SerialConfig:
    device: str = "/dev/serial0"
    baud_rate: int = 115200
    read_timeout: float = 1.0


@dataclass
class ProfileConfig:
    name: str = "aidon-7534"
    identifier: str | None = None
    frame_length: int | None = None
    timezone: str = "Europe/Helsinki"
    max_buffer_bytes: int | None = None

    def resolve(self) -> DeviceProfile:
        profile = get_profile(self.name)
        identifier = self.identifier.encode("ascii") if self.identifier else None
        if identifier is not None and not identifier.startswith(profile.header_marker):
            raise ValueError(
                f"[profile] identifier '{self.identifier}' must start with "
                f"header marker '{profile.header_marker.decode('ascii')}'"
            )
        return profile.with_overrides(identifier=identifier, frame_length=self.frame_length)


@dataclass
class TimingConfig:
    frame_timeout_ms: int = 2000
    watchdog_timeout_ms: int = 11000


@dataclass
class SimulationConfig:
    interval_ms: int = 10000


@dataclass
class MqttConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 1883
    topic: str = "energy/realtimedata"
    qos: int = 0
    retain: bool = True
    keepalive: int = 60
    client_id: str = ""
    username: str | None = None
    password: str | None = None


@dataclass
class WebhookConfig:
    enabled: bool = False
    url: str | None = None
    timeout: float = 10.0
    send_errors: bool = False


@dataclass
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: list[str] = field(default_factory=list)


@dataclass
class AppConfig:
    serial: SerialConfig
    profile: ProfileConfig
    timing: TimingConfig
    simulation: SimulationConfig
    mqtt: MqttConfig
    webhook: WebhookConfig
    logging: LoggingConfig


def load_defaults() -> AppConfig:
    return AppConfig(
        serial=SerialConfig(),
        profile=ProfileConfig(),
        timing=TimingConfig(),
        simulation=SimulationConfig(),
        mqtt=MqttConfig(),
        webhook=WebhookConfig(),
        logging=LoggingConfig(),
    )


class Config:
    def __init__(self, path: str):
        self.path = Path(path)
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",))
        read = self.parser.read(self.path)
        if not read:
            raise FileNotFoundError(f"Config file not found: {self.path}")

    @classmethod
    def load(cls, path: str) -> AppConfig:
        cfg = cls(path)

        p = cfg.parser

        def _as_bool(value: str) -> bool:
            return value.strip().lower() == "true"

        def _positive_int(sec, key: str) -> int:
            value = int(sec[key])
            if value <= 0:
                raise ValueError(f"[{sec.name}] {key} must be positive, got {value}")
            return value

        # --- Serial ---
        serial_kwargs = {}
        if "serial" in p:
            serial_sec = p["serial"]
            if "device" in serial_sec:
                serial_kwargs["device"] = serial_sec["device"]
            if "baud_rate" in serial_sec:
                serial_kwargs["baud_rate"] = _positive_int(serial_sec, "baud_rate")
            if "read_timeout" in serial_sec:
                serial_kwargs["read_timeout"] = float(serial_sec["read_timeout"])
        serial_cfg = SerialConfig(**serial_kwargs)

        # --- Profile ---
        profile_kwargs = {}
        if "profile" in p:
            profile_sec = p["profile"]
            if "name" in profile_sec:
                profile_kwargs["name"] = profile_sec["name"].strip()
            if profile_sec.get("identifier", "").strip():
                profile_kwargs["identifier"] = profile_sec["identifier"].strip()
            if "frame_length" in profile_sec:
                profile_kwargs["frame_length"] = _positive_int(profile_sec, "frame_length")
            if "timezone" in profile_sec:
                profile_kwargs["timezone"] = profile_sec["timezone"].strip()
            if "max_buffer_bytes" in profile_sec:
                profile_kwargs["max_buffer_bytes"] = _positive_int(profile_sec, "max_buffer_bytes")
        profile_cfg = ProfileConfig(**profile_kwargs)
        # Fail at load time on an unknown profile name.
        profile_cfg.resolve()

        # --- Timing ---
        timing_kwargs = {}
        if "timing" in p:
            timing_sec = p["timing"]
            if "frame_timeout_ms" in timing_sec:
                timing_kwargs["frame_timeout_ms"] = _positive_int(timing_sec, "frame_timeout_ms")
            if "watchdog_timeout_ms" in timing_sec:
                timing_kwargs["watchdog_timeout_ms"] = _positive_int(timing_sec, "watchdog_timeout_ms")
        timing_cfg = TimingConfig(**timing_kwargs)

        # --- Simulation ---
        simulation_kwargs = {}
        if "simulation" in p and "interval_ms" in p["simulation"]:
            simulation_kwargs["interval_ms"] = _positive_int(p["simulation"], "interval_ms")
        simulation_cfg = SimulationConfig(**simulation_kwargs)

        # --- MQTT ---
        mqtt_kwargs = {}
        if "mqtt" in p:
            mqtt_sec = p["mqtt"]
            if "enabled" in mqtt_sec:
                mqtt_kwargs["enabled"] = _as_bool(mqtt_sec["enabled"])
            if "host" in mqtt_sec:
                mqtt_kwargs["host"] = mqtt_sec["host"]
            if "port" in mqtt_sec:
                mqtt_kwargs["port"] = _positive_int(mqtt_sec, "port")
            if "topic" in mqtt_sec:
                mqtt_kwargs["topic"] = mqtt_sec["topic"]
            if "qos" in mqtt_sec:
                qos = int(mqtt_sec["qos"])
                if qos not in (0, 1, 2):
                    raise ValueError(f"[mqtt] qos must be 0, 1 or 2, got {qos}")
                mqtt_kwargs["qos"] = qos
            if "retain" in mqtt_sec:
                mqtt_kwargs["retain"] = _as_bool(mqtt_sec["retain"])
            if "keepalive" in mqtt_sec:
                mqtt_kwargs["keepalive"] = _positive_int(mqtt_sec, "keepalive")
            if "client_id" in mqtt_sec:
                mqtt_kwargs["client_id"] = mqtt_sec["client_id"]
            if "username" in mqtt_sec:
                mqtt_kwargs["username"] = mqtt_sec["username"]
            if "password" in mqtt_sec:
                mqtt_kwargs["password"] = mqtt_sec["password"]
        mqtt_cfg = MqttConfig(**mqtt_kwargs)

        # --- Webhook ---
        webhook_kwargs = {}
        if "webhook" in p:
            webhook_sec = p["webhook"]
            if "enabled" in webhook_sec:
                webhook_kwargs["enabled"] = _as_bool(webhook_sec["enabled"])
            if "url" in webhook_sec:
                webhook_kwargs["url"] = webhook_sec["url"]
            if "timeout" in webhook_sec:
                webhook_kwargs["timeout"] = float(webhook_sec["timeout"])
            if "send_errors" in webhook_sec:
                webhook_kwargs["send_errors"] = _as_bool(webhook_sec["send_errors"])
        webhook_cfg = WebhookConfig(**webhook_kwargs)

        logging_kwargs = {}
        if "logging" in p:
            logging_sec = p["logging"]
            if "console_level" in logging_sec:
                logging_kwargs["console_level"] = logging_sec["console_level"]
            if "console_quiet" in logging_sec:
                logging_kwargs["console_quiet"] = _as_bool(logging_sec["console_quiet"])
            if "debug_modules" in logging_sec:
                raw = logging_sec["debug_modules"]
                logging_kwargs["debug_modules"] = [x.strip() for x in raw.split(",") if x.strip()]
        logging_cfg = LoggingConfig(**logging_kwargs)

        return AppConfig(
            serial=serial_cfg,
            profile=profile_cfg,
            timing=timing_cfg,
            simulation=simulation_cfg,
            mqtt=mqtt_cfg,
            webhook=webhook_cfg,
            logging=logging_cfg,
        )
