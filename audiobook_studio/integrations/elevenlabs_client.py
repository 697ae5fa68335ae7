"""HTTP client for the text-to-speech provider's dictionary and voice APIs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from .. import logging_manager as log_mgr
from ..errors import DictionaryAPIError

DEFAULT_BASE_URL = "https://api.elevenlabs.io/v1"


@dataclass(frozen=True)
class PhonemeRule:
    grapheme: str
    phoneme: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "type": "phoneme",
            "phoneme": self.phoneme,
            "string_to_replace": self.grapheme,
            "alphabet": "ipa",
        }


class ElevenLabsClient:
    """Access pronunciation dictionaries and the voice catalogue."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._logger = logger or log_mgr.get_logger().getChild("integrations.elevenlabs")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_payload: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        if not self._api_key:
            raise DictionaryAPIError("Pronunciation dictionary API key is not configured")
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                json=json_payload,
                params=params,
                headers={"xi-api-key": self._api_key, "content-type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            self._logger.error(
                "Dictionary API request failed",
                extra={"event": "integrations.elevenlabs.transport_error", "attributes": {"url": url}},
                exc_info=True,
            )
            raise DictionaryAPIError("Pronunciation dictionary API is unreachable") from exc

        if response.status_code >= 400:
            self._logger.error(
                "Dictionary API returned HTTP %s",
                response.status_code,
                extra={
                    "event": "integrations.elevenlabs.error_response",
                    "attributes": {
                        "url": url,
                        "status_code": response.status_code,
                        "body": response.text,
                    },
                },
            )
            raise DictionaryAPIError(
                f"Pronunciation dictionary API responded with status {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DictionaryAPIError("Pronunciation dictionary API returned invalid JSON") from exc

    def list_dictionaries(self) -> List[Dict[str, Any]]:
        payload = self._request("GET", "/pronunciation-dictionaries/")
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ("pronunciation_dictionaries", "dictionaries"):
                entries = payload.get(key)
                if isinstance(entries, list):
                    return entries
        return []

    def get_dictionary(self, dictionary_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/pronunciation-dictionaries/{dictionary_id}")

    def find_dictionary(self, name: str) -> Optional[Dict[str, Any]]:
        for entry in self.list_dictionaries():
            if isinstance(entry, dict) and entry.get("name") == name:
                return entry
        return None

    def latest_version(self, dictionary_id: str) -> Optional[str]:
        payload = self.get_dictionary(dictionary_id)
        version = payload.get("latest_version_id") if isinstance(payload, dict) else None
        return str(version) if version else None

    def add_rules(
        self,
        dictionary_id: str,
        rules: Iterable[PhonemeRule],
        *,
        version_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"rules": [rule.to_payload() for rule in rules]}
        if version_id:
            body["version_id"] = version_id
        result = self._request(
            "POST", f"/pronunciation-dictionaries/{dictionary_id}/add-rules", json_payload=body
        )
        self._logger.info(
            "Added pronunciation rules",
            extra={
                "event": "integrations.elevenlabs.add_rules",
                "attributes": {"dictionary_id": dictionary_id, "count": len(body["rules"])},
            },
        )
        return result if isinstance(result, dict) else {}

    def remove_rules(
        self,
        dictionary_id: str,
        rule_strings: Iterable[str],
        *,
        version_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"rule_strings": list(rule_strings)}
        if version_id:
            body["version_id"] = version_id
        result = self._request(
            "POST", f"/pronunciation-dictionaries/{dictionary_id}/remove-rules", json_payload=body
        )
        return result if isinstance(result, dict) else {}

    def get_rules(self, dictionary_id: str, version_id: str) -> List[Dict[str, Any]]:
        payload = self._request(
            "GET",
            f"/pronunciation-dictionary/{dictionary_id}/rules",
            params={"version_id": version_id},
        )
        if isinstance(payload, dict):
            rules = payload.get("rules")
            return rules if isinstance(rules, list) else []
        return payload if isinstance(payload, list) else []

    def list_voices(self) -> List[Dict[str, Any]]:
        payload = self._request("GET", "/voices")
        voices = payload.get("voices") if isinstance(payload, dict) else payload
        return voices if isinstance(voices, list) else []

    def check_accessibility(self) -> bool:
        """Return ``True`` when the dictionary API answers a listing request."""
        try:
            self.list_dictionaries()
        except DictionaryAPIError:
            return False
        return True


__all__ = ["DEFAULT_BASE_URL", "ElevenLabsClient", "PhonemeRule"]
