from __future__ import annotations

import argparse
import json
import secrets
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, List, Optional, Tuple

RPC_PATH = "/transmission/rpc"
TOKEN_HEADER = "X-Transmission-Session-Id"

CONFLICT_BODY = (
    "<h1>409: Conflict</h1><p>Your request had an invalid session-id header.</p>"
    "<p>To fix this, follow these steps:<ol>"
    "<li> When reading a response, get its X-Transmission-Session-Id header and remember it"
    "<li> Add the updated header to your outgoing requests"
    "<li> When you get this 409 error message, resend your request with the updated header"
    "</ol></p>"
)

FAKE_TORRENTS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "debian-12.5.0-amd64-netinst.iso",
        "hashString": "2b9fc0f4d1a3b3e0c6a1e4f0b6b5d1a47f3c2e91",
        "status": 6,
        "percentDone": 1.0,
        "rateDownload": 0,
        "rateUpload": 18432,
        "totalSize": 659554304,
    },
    {
        "id": 2,
        "name": "ubuntu-24.04-desktop-amd64.iso",
        "hashString": "4a60e3e0c1c17bd1d6e3d9a0b2f1e8c9a7b6d5e4",
        "status": 4,
        "percentDone": 0.42,
        "rateDownload": 2097152,
        "rateUpload": 4096,
        "totalSize": 6114656256,
    },
]


def rpc_result(result: str, arguments: Optional[Dict[str, Any]] = None, tag: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"result": result}
    if arguments is not None:
        body["arguments"] = arguments
    if tag is not None:
        body["tag"] = tag
    return body


def fake_session(port: int) -> Dict[str, Any]:
    return {
        "version": "4.0.5 (a6fe2a64aa)",
        "rpc-version": 17,
        "rpc-version-minimum": 14,
        "peer-port": 51413,
        "rpc-port": port,
        "download-dir": "/var/lib/transmission/downloads",
        "speed-limit-down-enabled": False,
        "speed-limit-up-enabled": False,
    }


def wanted_ids(ids: Any) -> Optional[List[Any]]:
    """None means no filter; "recently-active" and other plain strings match everything."""
    if ids is None or isinstance(ids, str):
        return None
    if not isinstance(ids, list):
        ids = [ids]
    return [i for i in ids if isinstance(i, (int, str)) and not isinstance(i, bool)]


def fake_torrents(arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mock behavior:
      - "ids" narrows the list: numbers match "id", strings match "hashString".
      - "fields" keeps only the requested keys of each torrent.
    """
    torrents = FAKE_TORRENTS
    ids = wanted_ids(arguments.get("ids"))
    if ids is not None:
        torrents = [t for t in torrents if t["id"] in ids or t["hashString"] in ids]

    fields = arguments.get("fields")
    if isinstance(fields, list) and fields:
        torrents = [{k: v for k, v in t.items() if k in fields} for t in torrents]
    return {"torrents": torrents}


class MockTransmissionServer(HTTPServer):
    """HTTPServer that also holds the session id the handler enforces."""

    def __init__(self, server_address: Tuple[str, int]):
        super().__init__(server_address, Handler)
        self.session_id = secrets.token_urlsafe(24)
        self.request_count = 0

    def rotate_session(self) -> str:
        self.session_id = secrets.token_urlsafe(24)
        return self.session_id


class Handler(BaseHTTPRequestHandler):
    server: MockTransmissionServer

    def do_POST(self):
        self.server.request_count += 1
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length)

        if self.path != RPC_PATH:
            self._send(404, b"<h1>404: Not Found</h1>", "text/html")
            return

        if self.headers.get(TOKEN_HEADER) != self.server.session_id:
            self._send(409, CONFLICT_BODY.encode("utf-8"), "text/html")
            return

        try:
            req = json.loads(raw.decode("utf-8"))
            if not isinstance(req, dict):
                raise ValueError("request must be a JSON object")
        except ValueError as e:
            self._send(400, f"<h1>400: Bad Request</h1><p>{e}</p>".encode("utf-8"), "text/html")
            return

        method = req.get("method")
        arguments = req.get("arguments") or {}
        tag = req.get("tag")

        if not isinstance(arguments, dict):
            self._send_json(rpc_result("invalid argument", tag=tag))
            return

        if method == "session-get":
            self._send_json(rpc_result("success", fake_session(self.server.server_port), tag))
            return

        if method == "torrent-get":
            self._send_json(rpc_result("success", fake_torrents(arguments), tag))
            return

        self._send_json(rpc_result("method name not recognized", tag=tag))

    def log_message(self, fmt: str, *args):
        # keep console clean
        return

    def _send_json(self, body: Dict[str, Any]):
        self._send(200, json.dumps(body).encode("utf-8"), "application/json")

    def _send(self, status: int, data: bytes, content_type: str):
        self.send_response(status)
        self.send_header(TOKEN_HEADER, self.server.session_id)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Local stand-in for a Transmission daemon RPC endpoint")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=9091)
    args = ap.parse_args(argv)

    server = MockTransmissionServer((args.host, args.port))
    print(f"Mock Transmission RPC listening on http://{args.host}:{args.port}{RPC_PATH}")
    server.serve_forever()


if __name__ == "__main__":
    main()
