import json
import logging
from typing import Any, Dict, Optional

import httpx

from src.exceptions import ConnectionFailure, InvalidResponse, UnexpectedResponse

logger = logging.getLogger(__name__)

RPC_PATH = "/transmission/rpc"
TOKEN_HEADER = "X-Transmission-Session-Id"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9091


def build_envelope(
    method: str, arguments: Optional[Dict[str, Any]] = None, tag: Optional[str] = None
) -> Dict[str, Any]:
    """Request body for one RPC call. Empty arguments and missing tags are left out."""
    envelope: Dict[str, Any] = {"method": str(method)}
    if arguments:
        envelope["arguments"] = dict(arguments)
    if tag:
        envelope["tag"] = str(tag)
    return envelope


class TransmissionClient:
    """
    Client for the Transmission daemon's JSON RPC endpoint.

    The daemon rejects requests that do not carry its current session id with
    HTTP 409 and hands out the id to use in the same response. The client keeps
    the last id it saw and re-sends a rejected call once with it:

      - call("session-get") -> decoded JSON body
      - call("torrent-get", {"fields": ["id", "name"]}, tag="42")

    The decoded body is returned as-is; checking its "result" field is up to
    the caller.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        *,
        token: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.host = host or DEFAULT_HOST
        self.port = port or DEFAULT_PORT
        self.token = token
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, value: str) -> None:
        self._host = str(value)

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = int(value)

    @property
    def token(self) -> Optional[str]:
        return self._token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self._token = None if value is None else str(value)

    @property
    def http_client(self) -> httpx.Client:
        return self._http

    @http_client.setter
    def http_client(self, value: httpx.Client) -> None:
        if self._owns_http_client:
            self._http.close()
        self._http = value
        self._owns_http_client = False

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{RPC_PATH}"

    def configure(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        token: Optional[str] = None,
    ) -> "TransmissionClient":
        if host is not None:
            self.host = host
        if port is not None:
            self.port = port
        if token is not None:
            self.token = token
        return self

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def __enter__(self) -> "TransmissionClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def call(
        self, method: str, arguments: Optional[Dict[str, Any]] = None, tag: Optional[str] = None
    ) -> Any:
        body = json.dumps(build_envelope(method, arguments, tag))
        logger.debug(f"Calling {method} on {self.url}")

        # the second pass only happens after a 409 that carried a fresh session id
        for attempt in range(2):
            response = self._post(body)
            if response.status_code != 409:
                break

            new_token = response.headers.get(TOKEN_HEADER)
            if not new_token:
                logger.warning("Transmission sent 409 without a session id")
                raise InvalidResponse("Invalid response received from Transmission: 409 without session id")

            self.token = new_token
            logger.info(f"Refreshed Transmission session id for {self.host}:{self.port}")
            if attempt == 1:
                logger.warning(f"Transmission rejected the refreshed session id for {method}")
                raise UnexpectedResponse(409, "Transmission rejected the refreshed session id")

        if response.status_code != 200:
            logger.warning(f"Transmission answered {method} with HTTP {response.status_code}")
            raise UnexpectedResponse(response.status_code)

        return self._decode(response.content)

    def _post(self, body: str) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.token is not None:
            headers[TOKEN_HEADER] = self.token
        try:
            return self._http.post(self.url, content=body, headers=headers)
        except Exception as e:
            logger.warning(f"Could not reach Transmission at {self.url}: {e}")
            raise ConnectionFailure("Could not connect to Transmission", cause=e) from e

    @staticmethod
    def _decode(content: bytes) -> Any:
        try:
            return json.loads(content)
        except ValueError as e:
            raise InvalidResponse("Invalid response received from Transmission: body is not JSON") from e
