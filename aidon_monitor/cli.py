# aidon_monitor/cli.py
import argparse

def build_parser():
    parser = argparse.ArgumentParser(
        prog="aidon-monitor",
        description="Aidon HAN port reader and forwarder"
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: aidon_monitor.conf if present)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console log output"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # Long-running reader on the real HAN port
    sub.add_parser("run", help="Read the HAN serial port and forward readings")

    # Same pipeline, canned frames
    cmd_sim = sub.add_parser(
        "simulate",
        help="Run the pipeline against a simulated meter",
    )
    cmd_sim.add_argument(
        "--interval-ms",
        type=int,
        help="Override [simulation] interval_ms",
    )

    # Offline decode of a captured frame
    cmd_decode = sub.add_parser(
        "decode",
        help="Validate and decode one captured frame from a file",
    )
    cmd_decode.add_argument("path", help="File holding the raw frame bytes")
    cmd_decode.add_argument(
        "--hex",
        action="store_true",
        help="File contains the frame as hex text",
    )
    cmd_decode.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of human-readable text",
    )

    return parser
