"""Authenticated HTTP transport for the MAX Bot API.

Every call carries the bot credential as the ``access_token`` query
parameter and goes through one shared :class:`requests.Session`.  Failures
are surfaced as :class:`~max_sdk.exceptions.APIError`:

* transport problems (connection, timeout, non-2xx status without an error
  body, malformed JSON) become ``"<VERB> request failed: <cause>"`` with no
  HTTP/API code attached;
* a decoded body carrying an ``error`` object becomes
  :meth:`APIError.from_api_response` with the response status code.

No retries are attempted and the timeout is fixed per client.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests
from pydantic import BaseModel, ConfigDict, ValidationError

from max_sdk.exceptions import APIError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: str = "https://botapi.max.ru"
DEFAULT_TIMEOUT: float = 30
USER_AGENT: str = "max-sdk-python/0.1"

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
_TOKEN_PATTERN = re.compile(r"(access_token=)[^&\s'\"]+")


def redact_token(text: str) -> str:
    """Mask ``access_token`` query values, e.g. in URLs quoted by requests errors."""
    return _TOKEN_PATTERN.sub(r"\1***", text)


class ClientConfig(BaseModel):
    """Immutable client settings, fixed at construction."""

    bot_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = True

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_options(cls, bot_token: Optional[str] = None, **options: Any) -> "ClientConfig":
        """Validate raw options, raising :class:`ConfigurationError` on failure.

        Unset options (``None``) fall back to their defaults.
        """
        if not bot_token:
            raise ConfigurationError("Bot token is required")
        values = {key: value for key, value in options.items() if value is not None}
        try:
            return cls(bot_token=bot_token, **values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid client configuration: {exc}") from exc


class Transport:
    """Executes API calls and maps failures to :class:`APIError`."""

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

    @property
    def config(self) -> ClientConfig:
        return self._config

    def close(self) -> None:
        """Release the pooled connections of the underlying session."""
        self._session.close()

    # ------------------------------------------------------------------
    #  Authenticated API calls
    # ------------------------------------------------------------------

    def execute(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            method: HTTP verb (``GET``, ``POST``, ``PUT``, ``PATCH``, ``DELETE``).
            path: Endpoint path relative to the base URL, e.g. ``/chats``.
            query: Extra query parameters; ``access_token`` is always added.
            body: JSON body.  POST/PUT/PATCH send ``{}`` when omitted.

        Raises:
            APIError: On transport failure or when the API reports an error.
        """
        verb = method.upper()
        url = f"{self._base_url}/{path.lstrip('/')}"
        params: Dict[str, Any] = dict(query or {})
        params["access_token"] = self._config.bot_token

        kwargs: Dict[str, Any] = {
            "params": params,
            "timeout": self._config.timeout,
            "verify": self._config.verify_tls,
        }
        if body is not None or verb in _BODY_METHODS:
            kwargs["json"] = body if body is not None else {}

        logger.debug("API request", extra={"http_method": verb, "api_endpoint": path})
        try:
            response = self._session.request(verb, url, **kwargs)
        except requests.RequestException as exc:
            cause = redact_token(str(exc))
            logger.error("API request error", extra={"http_method": verb, "api_endpoint": path, "error": cause})
            raise APIError(f"{verb} request failed: {cause}") from exc

        return self._decode(verb, path, response)

    def _decode(self, verb: str, path: str, response: requests.Response) -> Any:
        """Turn a received response into a body or an :class:`APIError`."""
        body: Any = {}
        decode_error: Optional[ValueError] = None
        if response.content:
            try:
                body = response.json()
            except ValueError as exc:
                decode_error = exc

        if isinstance(body, dict) and "error" in body:
            error = APIError.from_api_response(body, response.status_code)
            logger.warning(
                "API reported an error",
                extra={
                    "http_method": verb,
                    "api_endpoint": path,
                    "status_code": response.status_code,
                    "api_error_code": error.api_error_code,
                    "error": error.message,
                },
            )
            raise error

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            cause = redact_token(str(exc))
            logger.error(
                "API HTTP error",
                extra={"http_method": verb, "api_endpoint": path, "status_code": response.status_code, "error": cause},
            )
            raise APIError(f"{verb} request failed: {cause}") from exc

        if decode_error is not None:
            logger.error("API JSON decode error", extra={"http_method": verb, "api_endpoint": path, "error": str(decode_error)})
            raise APIError(f"{verb} request failed: malformed JSON response ({decode_error})") from decode_error

        return body

    # ------------------------------------------------------------------
    #  Unauthenticated one-shot calls (upload / download URLs)
    # ------------------------------------------------------------------

    def upload(self, upload_url: str, file_path: str | Path) -> Any:
        """POST *file_path* as multipart ``file`` to a pre-signed upload URL.

        Uses a transient ``requests`` call without the bot credential.

        Raises:
            FileNotFoundError: If *file_path* does not exist.
            APIError: On transport failure or an ``error`` body.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            with path.open("rb") as handle:
                response = requests.post(
                    upload_url,
                    files={"file": (path.name, handle)},
                    timeout=self._config.timeout,
                    verify=self._config.verify_tls,
                )
            response.raise_for_status()
            result = response.json() if response.content else {}
        except (requests.RequestException, ValueError) as exc:
            logger.error("Upload failed", extra={"file_name": path.name, "error": str(exc)})
            raise APIError(f"Upload failed: {exc}") from exc

        if isinstance(result, dict) and "error" in result:
            raise APIError.from_api_response(result, response.status_code)
        logger.debug("Upload finished", extra={"file_name": path.name, "status_code": response.status_code})
        return result

    def download(self, download_url: str) -> bytes:
        """Fetch raw bytes from a download URL handed out by the API."""
        try:
            response = requests.get(download_url, timeout=self._config.timeout, verify=self._config.verify_tls)
            response.raise_for_status()
        except requests.RequestException as exc:
            cause = redact_token(str(exc))
            logger.error("Download failed", extra={"error": cause})
            raise APIError(f"Download failed: {cause}") from exc
        return response.content
