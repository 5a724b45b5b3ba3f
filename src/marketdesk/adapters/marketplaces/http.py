"""Shared JSON-over-HTTP plumbing for marketplace clients."""

from __future__ import annotations

import json
from typing import Any, Self
import urllib.error
import urllib.parse
import urllib.request

import loguru
from loguru import logger
from pydantic import BaseModel, ConfigDict


class MarketplaceClientError(Exception):
    """Base error for marketplace API failures."""


class NotConnectedError(MarketplaceClientError):
    """The marketplace has no usable credentials."""


class MarketplaceModel(BaseModel):
    """Shared base for marketplace response models with a short parse alias."""

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def parse(cls, data: Any) -> Self:
        return cls.model_validate(data)


class MarketplaceClientLogger:
    """Handles all logging for marketplace HTTP calls."""

    def __init__(
        self, service: str, logger_instance: loguru.Logger = logger
    ) -> None:
        self._service = service
        self._logger = logger_instance

    def request(self, method: str, path: str) -> None:
        """Log an outbound request."""
        self._logger.bind(service=self._service, method=method, path=path).debug(
            "{} {} {}", self._service, method, path
        )

    def request_failed(self, method: str, path: str, error: str) -> None:
        """Log a failed request."""
        self._logger.bind(service=self._service, method=method, path=path).warning(
            "{} {} {} failed: {}", self._service, method, path, error
        )


class JsonHttpClient:
    """Minimal JSON client over ``urllib`` with a bounded timeout."""

    service_name = "marketplace"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        client_logger: MarketplaceClientLogger | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._log = client_logger or MarketplaceClientLogger(self.service_name)

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _before_request(self) -> None:
        """Hook run before every request (rate limiting)."""

    def _parse_json_response(self, body: str) -> Any:
        try:
            return json.loads(body) if body else {}
        except json.JSONDecodeError as e:
            raise MarketplaceClientError(
                f"Failed to parse {self.service_name} response as JSON: {e}: {body}"
            ) from e

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        self._before_request()
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self._auth_headers(),
        }

        url = self._base_url + path
        if params:
            query = urllib.parse.urlencode(
                {k: v for k, v in params.items() if v is not None}
            )
            if query:
                url = f"{url}?{query}"

        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(  # noqa: S310
            url, data=data, headers=headers, method=method
        )

        self._log.request(method, path)
        try:
            with urllib.request.urlopen(  # noqa: S310 - external HTTPS
                req, timeout=self._timeout
            ) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            err_body = e.read().decode("utf-8", "ignore")
            self._log.request_failed(method, path, f"HTTP {e.code}")
            raise MarketplaceClientError(
                f"{self.service_name} API error {e.code}: {err_body}"
            ) from e
        except (urllib.error.URLError, TimeoutError) as e:
            self._log.request_failed(method, path, str(e))
            raise MarketplaceClientError(
                f"Network error calling {self.service_name} API: {e}"
            ) from e

        return self._parse_json_response(body)
