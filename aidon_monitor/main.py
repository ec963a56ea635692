# aidon_monitor/main.py

from pathlib import Path
import signal
import sys

from .cli import build_parser
from .config import AppConfig, Config, load_defaults
from .logging import ConsoleLog, get_logger
from .models.errors import HanError

from .services.output_formatter import emit_human, emit_json
from .services.pipeline import HanPipeline
from .services.scheduler import Scheduler
from .services.serial_source import SerialByteSource
from .services.simulation_source import SimulationByteSource
from .services.sink_manager import SinkManager
from .services.sinks.log_sink import LogSink
from .services.sinks.mqtt import MqttSink
from .services.sinks.webhook import WebhookSink

DEFAULT_CONFIG_PATH = "aidon_monitor.conf"


def load_config(path: str | None) -> AppConfig:
    if path:
        return Config.load(path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return Config.load(DEFAULT_CONFIG_PATH)
    return load_defaults()


def build_sinks(app_cfg: AppConfig, log, *, simulate: bool) -> SinkManager:
    if simulate:
        # Simulated readings are only logged, never forwarded.
        return SinkManager([LogSink(log, label="Simulated data")], log)

    mqtt_sink = MqttSink(app_cfg.mqtt, log)
    webhook_sink = WebhookSink(app_cfg.webhook, log)
    forwarding = mqtt_sink.enabled or webhook_sink.enabled
    sinks = [LogSink(log, log_readings=not forwarding), mqtt_sink, webhook_sink]
    mqtt_sink.start()
    return SinkManager(sinks, log)


def run_pipeline(app_cfg: AppConfig, log, *, simulate: bool) -> int:
    scheduler = Scheduler(log=log)
    if simulate:
        source = SimulationByteSource(scheduler, interval_ms=app_cfg.simulation.interval_ms, log=log)
    else:
        source = SerialByteSource(app_cfg.serial, log)

    sinks = build_sinks(app_cfg, log, simulate=simulate)
    exit_code = 0

    def _link_down():
        # No automatic retry; leave restarts to the process supervisor.
        nonlocal exit_code
        exit_code = 1
        log.error("Byte source could not be opened; exiting.")
        scheduler.stop()

    pipeline = HanPipeline(
        app_cfg.profile.resolve(),
        source,
        sinks,
        scheduler,
        timing=app_cfg.timing,
        meter_timezone=app_cfg.profile.timezone,
        max_buffer_bytes=app_cfg.profile.max_buffer_bytes,
        on_link_down=_link_down,
        log=log,
    )

    def _exit_handler(signum, frame):
        log.info("exit handler %s", signal.Signals(signum).name)
        scheduler.stop()

    signal.signal(signal.SIGINT, _exit_handler)
    signal.signal(signal.SIGTERM, _exit_handler)

    try:
        if not pipeline.start():
            return 1
        log.info("aidon-monitor initialized")
        scheduler.run_forever()
    finally:
        pipeline.shutdown()
        sinks.close()
    log.info("aidon-monitor stopped (%d readings, %d errors)", sinks.readings, sinks.errors)
    return exit_code


def run_decode(app_cfg: AppConfig, log, path: str, *, as_hex: bool, as_json: bool) -> int:
    raw = Path(path).read_bytes()
    if as_hex:
        try:
            raw = bytes.fromhex("".join(raw.decode("ascii").split()))
        except (UnicodeDecodeError, ValueError) as exc:
            print(f"Invalid hex input: {exc}", file=sys.stderr)
            return 2

    profile = app_cfg.profile.resolve()
    pipeline = HanPipeline(
        profile,
        None,
        None,
        Scheduler(log=log),
        timing=app_cfg.timing,
        meter_timezone=app_cfg.profile.timezone,
        log=log,
    )
    try:
        reading = pipeline.process_frame(raw)
    except HanError as exc:
        print(f"{exc.kind}: {exc.message}", file=sys.stderr)
        return 1

    if as_json:
        emit_json(reading)
    else:
        emit_human(reading, profile)
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    app_cfg = load_config(args.config)
    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    console_logger.setup()
    log = get_logger("aidon-comm")

    if args.command == "run":
        return run_pipeline(app_cfg, log, simulate=False)
    if args.command == "simulate":
        if args.interval_ms is not None:
            app_cfg.simulation.interval_ms = args.interval_ms
        log.info("AidonComm init - simulate: True")
        return run_pipeline(app_cfg, log, simulate=True)
    if args.command == "decode":
        return run_decode(app_cfg, log, args.path, as_hex=args.hex, as_json=args.json)
    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
