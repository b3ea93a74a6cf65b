import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.exceptions import ConnectionFailure, TransmissionError
from src.transmission_client import DEFAULT_HOST, DEFAULT_PORT, TransmissionClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_CONNECTION = 2
EXIT_RESPONSE = 3


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    """Inline JSON, or @path to a JSON file. Must decode to an object."""
    if not raw:
        return {}
    if raw.startswith("@"):
        value = load_json(Path(raw[1:]))
    else:
        value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("--arguments must be a JSON object")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="transmission-rpc", description="Call a Transmission RPC method")
    ap.add_argument("method", help="RPC method name, e.g. session-get or torrent-get")
    ap.add_argument("--host", default=DEFAULT_HOST, help="Transmission daemon host")
    ap.add_argument("--port", type=int, default=DEFAULT_PORT, help="Transmission RPC port")
    ap.add_argument("--arguments", default=None, help="JSON object of method arguments, or @file.json")
    ap.add_argument("--tag", default=None, help="Optional tag echoed back by the daemon")
    ap.add_argument("--token", default=None, help="Session id to start with (skips the first handshake)")
    ap.add_argument("--timeout", type=float, default=30.0, help="HTTP timeout in seconds")
    ap.add_argument("--out", default=None, help="Write the JSON response here instead of stdout")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log requests and session refreshes")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        arguments = parse_arguments(args.arguments)
    except (OSError, ValueError) as e:
        print(f"Invalid --arguments: {e}", file=sys.stderr)
        return EXIT_USAGE

    with TransmissionClient(args.host, args.port, token=args.token, timeout=args.timeout) as client:
        try:
            result = client.call(args.method, arguments, args.tag)
        except ConnectionFailure as e:
            print(f"{e}: {e.cause}", file=sys.stderr)
            return EXIT_CONNECTION
        except TransmissionError as e:
            print(str(e), file=sys.stderr)
            return EXIT_RESPONSE

    rendered = json.dumps(result, indent=2)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(rendered, encoding="utf-8")
        logger.info(f"Wrote response to {out_path}")
    else:
        print(rendered)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
