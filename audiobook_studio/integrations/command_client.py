"""HTTP client for the remote pipeline command server."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests

from .. import logging_manager as log_mgr
from ..errors import CommandServerTimeout, CommandServerUnavailable, PipelineCommandError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of ``POST /run-command``.

    Synchronous servers return ``output``/``error``/``returncode``;
    asynchronous ones return ``task_id``/``status``.
    """

    output: str = ""
    error: str = ""
    returncode: Optional[int] = None
    task_id: Optional[str] = None
    status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CommandResult":
        returncode = payload.get("returncode")
        task_id = payload.get("task_id")
        return cls(
            output=str(payload.get("output") or ""),
            error=str(payload.get("error") or ""),
            returncode=int(returncode) if isinstance(returncode, (int, float)) else None,
            task_id=str(task_id) if task_id not in (None, "") else None,
            status=payload.get("status"),
            raw=dict(payload),
        )

    @property
    def succeeded(self) -> bool:
        if self.returncode is not None:
            return self.returncode == 0
        return self.status not in {"failed", "error"}


class CommandServerClient:
    """Submit shell commands to the remote pipeline host."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        health_timeout: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be a non-empty string")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = timeout
        self._health_timeout = health_timeout
        self._logger = logger or log_mgr.get_logger().getChild("integrations.command_server")

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        event: str,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                json=json_payload,
                headers=self._headers(),
                timeout=timeout or self._timeout,
            )
        except requests.Timeout as exc:
            self._logger.error(
                "Command server request timed out",
                extra={"event": f"{event}.timeout", "attributes": {"url": url}},
            )
            raise CommandServerTimeout("Command server request timed out") from exc
        except requests.RequestException as exc:
            self._logger.error(
                "Command server request failed",
                extra={"event": f"{event}.transport_error", "attributes": {"url": url}},
                exc_info=True,
            )
            raise CommandServerUnavailable("Unable to connect to the remote server") from exc

        if response.status_code >= 400:
            self._logger.error(
                "Command server returned HTTP %s",
                response.status_code,
                extra={
                    "event": f"{event}.error_response",
                    "attributes": {
                        "url": url,
                        "status_code": response.status_code,
                        "body": response.text,
                    },
                },
            )
            raise PipelineCommandError(
                f"Remote server responded with status {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise PipelineCommandError("Remote server returned an invalid response") from exc
        if not isinstance(payload, dict):
            raise PipelineCommandError("Remote server returned an invalid response")
        return payload

    def run_command(self, command: str) -> CommandResult:
        """Execute ``command`` on the remote host."""

        self._logger.info(
            "Submitting pipeline command",
            extra={"event": "integrations.command_server.run", "attributes": {"command": command}},
        )
        payload = self._request(
            "POST",
            "/run-command",
            json_payload={"command": command},
            event="integrations.command_server.run",
        )
        result = CommandResult.from_payload(payload)
        self._logger.info(
            "Pipeline command accepted",
            extra={
                "event": "integrations.command_server.accepted",
                "attributes": {"task_id": result.task_id, "returncode": result.returncode},
            },
        )
        return result

    def task_status(self, task_id: str) -> Dict[str, Any]:
        return self._request(
            "GET", f"/task-status/{task_id}", event="integrations.command_server.task_status"
        )

    def cancel_task(self, task_id: str) -> Dict[str, Any]:
        return self._request(
            "POST", f"/cancel-task/{task_id}", event="integrations.command_server.cancel"
        )

    def health(self) -> Dict[str, Any]:
        """Return the remote ``/health`` payload, raising when unreachable."""

        return self._request(
            "GET",
            "/health",
            timeout=self._health_timeout,
            event="integrations.command_server.health",
        )


__all__ = ["CommandResult", "CommandServerClient"]
