"""Per-project pronunciation corrections and the shared master dictionary."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import and_, delete, select

from .. import logging_manager
from ..config import StudioSettings
from ..database.engine import get_db_session
from ..database.models import MasterDictionaryEntryModel
from ..errors import DictionaryAPIError, InvalidRequest, NotFoundError, StorageError
from ..integrations.elevenlabs_client import ElevenLabsClient, PhonemeRule
from ..pronunciation.pls import build_pls, validate_pls
from ..storage import keys
from ..storage.object_store import ObjectStore
from .project_service import ProjectService

logger = logging_manager.get_logger().getChild("services.pronunciation")


@dataclass(frozen=True)
class PronunciationCorrection:
    original_name: str
    corrected_pronunciation: str = ""
    ipa_pronunciation: str = ""

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "PronunciationCorrection":
        name = str(payload.get("originalName") or payload.get("original_name") or "").strip()
        if not name:
            raise InvalidRequest("Each correction needs an original name.")
        return cls(
            original_name=name,
            corrected_pronunciation=str(
                payload.get("correctedPronunciation") or payload.get("corrected_pronunciation") or ""
            ).strip(),
            ipa_pronunciation=str(
                payload.get("ipaPronunciation") or payload.get("ipa_pronunciation") or ""
            ).strip(),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "originalName": self.original_name,
            "correctedPronunciation": self.corrected_pronunciation,
            "ipaPronunciation": self.ipa_pronunciation,
        }


@dataclass(frozen=True)
class DictionaryInfo:
    name: str
    id: Optional[str] = None
    version_id: Optional[str] = None


@dataclass(frozen=True)
class SyncResult:
    dictionary_name: str
    dictionary_file: str
    api_accessible: bool
    updated: bool
    dictionary_id: Optional[str] = None
    version_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dictionaryName": self.dictionary_name,
            "dictionaryFileName": self.dictionary_file,
            "apiAccessible": self.api_accessible,
            "updated": self.updated,
            "dictionaryId": self.dictionary_id,
            "versionId": self.version_id,
        }


class PronunciationService:
    """Keep corrections, the project lexicon file and the master dictionary in step."""

    def __init__(
        self,
        store: ObjectStore,
        client: ElevenLabsClient,
        projects: ProjectService,
        settings: StudioSettings,
    ) -> None:
        self._store = store
        self._client = client
        self._projects = projects
        self._settings = settings

    @property
    def dictionary_name(self) -> str:
        return self._settings.master_dictionary_name

    # Corrections file ---------------------------------------------------------

    def load_corrections(self, user_id: str, project_id: str) -> List[PronunciationCorrection]:
        key = keys.corrections_key(user_id, project_id)
        try:
            payload = json.loads(self._store.read_text(key))
        except NotFoundError:
            return []
        except ValueError as exc:
            raise StorageError(f"{key} is not valid JSON") from exc
        if not isinstance(payload, list):
            return []
        return [PronunciationCorrection.from_mapping(entry) for entry in payload if isinstance(entry, dict)]

    def save_corrections(
        self,
        user_id: str,
        project_id: str,
        corrections: Iterable[Mapping[str, Any] | PronunciationCorrection],
    ) -> List[PronunciationCorrection]:
        self._projects.get_project(user_id, project_id)
        parsed = [
            entry if isinstance(entry, PronunciationCorrection) else PronunciationCorrection.from_mapping(entry)
            for entry in corrections
        ]
        self._store.write_text(
            keys.corrections_key(user_id, project_id),
            json.dumps([entry.to_dict() for entry in parsed], indent=2, ensure_ascii=False),
            content_type="application/json",
        )
        return parsed

    # Master dictionary --------------------------------------------------------

    def resolve_master_dictionary(self) -> DictionaryInfo:
        """Locate the master dictionary and its latest version.

        Lookup failures return a ``DictionaryInfo`` without an id.
        """

        name = self.dictionary_name
        if not self._client.configured:
            return DictionaryInfo(name=name)
        try:
            configured_id = self._settings.master_dictionary_id
            if configured_id:
                return DictionaryInfo(
                    name=name, id=configured_id, version_id=self._client.latest_version(configured_id)
                )
            found = self._client.find_dictionary(name)
        except DictionaryAPIError:
            logger.warning(
                "Unable to resolve master dictionary",
                extra={"event": "pronunciation.dictionary.lookup_failed"},
                exc_info=True,
            )
            return DictionaryInfo(name=name, id=self._settings.master_dictionary_id)
        if not found:
            return DictionaryInfo(name=name)
        version = found.get("latest_version_id")
        return DictionaryInfo(
            name=name, id=str(found.get("id")), version_id=str(version) if version else None
        )

    def sync_master_dictionary(
        self,
        user_id: str,
        project_id: str,
        corrections: Optional[Iterable[Mapping[str, Any] | PronunciationCorrection]] = None,
    ) -> SyncResult:
        """Write the project lexicon and push its rules to the master dictionary."""

        project = self._projects.get_project(user_id, project_id)
        if corrections is None:
            entries = self.load_corrections(user_id, project_id)
        else:
            entries = self.save_corrections(user_id, project_id, corrections)
        usable = [entry for entry in entries if entry.ipa_pronunciation]

        name = self.dictionary_name
        file_key = keys.dictionary_key(user_id, project_id, name)
        if not usable:
            return SyncResult(
                dictionary_name=name, dictionary_file=file_key, api_accessible=False, updated=False
            )

        document = build_pls((entry.original_name, entry.ipa_pronunciation) for entry in usable)
        problem = validate_pls(document)
        if problem:
            raise StorageError(f"Generated lexicon for {project_id} is invalid: {problem}")
        self._store.write_text(file_key, document, content_type="application/xml")

        info = self.resolve_master_dictionary()
        version_id = info.version_id
        api_accessible = False
        if info.id:
            try:
                response = self._client.add_rules(
                    info.id,
                    [PhonemeRule(entry.original_name, entry.ipa_pronunciation) for entry in usable],
                    version_id=info.version_id,
                )
                version_id = str(response.get("version_id") or version_id or "") or None
                api_accessible = True
            except DictionaryAPIError:
                logger.warning(
                    "Adding rules to the master dictionary failed",
                    extra={"event": "pronunciation.rules.add_failed", "project_id": project_id},
                    exc_info=True,
                )

        self.upsert_entries(
            user_id,
            project_id,
            project_name=project.project_name,
            book_name=project.book_title,
            corrections=usable,
            dict_id=info.id,
            version_id=version_id,
        )
        self._projects.set_dictionary(user_id, project_id, name=name, file_key=file_key)
        logger.info(
            "Master dictionary synchronised",
            extra={
                "event": "pronunciation.sync",
                "project_id": project_id,
                "attributes": {"rules": len(usable), "api_accessible": api_accessible},
            },
        )
        return SyncResult(
            dictionary_name=name,
            dictionary_file=file_key,
            api_accessible=api_accessible,
            updated=True,
            dictionary_id=info.id,
            version_id=version_id,
        )

    def remote_dictionary(self) -> Dict[str, Any]:
        """Describe the master dictionary as the remote API currently sees it."""

        info = self.resolve_master_dictionary()
        accessible = self._client.configured and self._client.check_accessibility()
        rules: List[Dict[str, Any]] = []
        if accessible and info.id and info.version_id:
            try:
                rules = self._client.get_rules(info.id, info.version_id)
            except DictionaryAPIError:
                logger.warning(
                    "Unable to fetch master dictionary rules",
                    extra={"event": "pronunciation.rules.fetch_failed"},
                    exc_info=True,
                )
        return {
            "name": info.name,
            "dictionaryId": info.id,
            "versionId": info.version_id,
            "apiAccessible": accessible,
            "rules": rules,
        }

    def upsert_entries(
        self,
        user_id: str,
        project_id: str,
        *,
        project_name: Optional[str],
        book_name: Optional[str],
        corrections: Iterable[Mapping[str, Any] | PronunciationCorrection],
        dict_id: Optional[str] = None,
        version_id: Optional[str] = None,
    ) -> int:
        """Replace the mirror rows for each grapheme in ``corrections``."""

        parsed = [
            entry if isinstance(entry, PronunciationCorrection) else PronunciationCorrection.from_mapping(entry)
            for entry in corrections
        ]
        with get_db_session() as session:
            for entry in parsed:
                session.execute(
                    delete(MasterDictionaryEntryModel).where(
                        and_(
                            MasterDictionaryEntryModel.user_id == user_id,
                            MasterDictionaryEntryModel.project_id == project_id,
                            MasterDictionaryEntryModel.grapheme == entry.original_name,
                        )
                    )
                )
            session.add_all(
                MasterDictionaryEntryModel(
                    user_id=user_id,
                    project_id=project_id,
                    project_name=project_name,
                    book_name=book_name,
                    grapheme=entry.original_name,
                    phoneme=entry.ipa_pronunciation,
                    dict_id=dict_id,
                    version_id=version_id,
                )
                for entry in parsed
            )
        return len(parsed)

    def project_rules(self, user_id: str, project_id: str) -> List[Dict[str, Any]]:
        with get_db_session() as session:
            models = (
                session.execute(
                    select(MasterDictionaryEntryModel)
                    .where(
                        and_(
                            MasterDictionaryEntryModel.user_id == user_id,
                            MasterDictionaryEntryModel.project_id == project_id,
                        )
                    )
                    .order_by(MasterDictionaryEntryModel.id.asc())
                )
                .scalars()
                .all()
            )
            return [
                {
                    "grapheme": m.grapheme,
                    "phoneme": m.phoneme,
                    "dict_id": m.dict_id,
                    "version_id": m.version_id,
                }
                for m in models
            ]

    def remove_project_rules(self, user_id: str, project_id: str) -> int:
        """Remove every rule a project contributed; returns the rows deleted."""
        return self._remove(user_id, project_id, grapheme=None)

    def remove_rule(self, user_id: str, project_id: str, grapheme: str) -> int:
        if not grapheme:
            raise InvalidRequest("grapheme is required")
        return self._remove(user_id, project_id, grapheme=grapheme)

    def _remove(self, user_id: str, project_id: str, *, grapheme: Optional[str]) -> int:
        rules = self.project_rules(user_id, project_id)
        if grapheme is not None:
            rules = [rule for rule in rules if rule["grapheme"] == grapheme]
        if not rules:
            return 0

        if self._client.configured:
            dict_id = next((rule["dict_id"] for rule in rules if rule["dict_id"]), None)
            version_id = next(
                (rule["version_id"] for rule in reversed(rules) if rule["version_id"]), None
            )
            try:
                if not dict_id or not version_id:
                    info = self.resolve_master_dictionary()
                    dict_id = dict_id or info.id
                    version_id = version_id or info.version_id
                if dict_id:
                    self._client.remove_rules(
                        dict_id, [rule["grapheme"] for rule in rules], version_id=version_id
                    )
            except DictionaryAPIError:
                logger.warning(
                    "Removing rules from the master dictionary failed; deleting local rows anyway",
                    extra={"event": "pronunciation.rules.remove_failed", "project_id": project_id},
                    exc_info=True,
                )

        conditions = [
            MasterDictionaryEntryModel.user_id == user_id,
            MasterDictionaryEntryModel.project_id == project_id,
        ]
        if grapheme is not None:
            conditions.append(MasterDictionaryEntryModel.grapheme == grapheme)
        with get_db_session() as session:
            session.execute(delete(MasterDictionaryEntryModel).where(and_(*conditions)))
        logger.info(
            "Pronunciation rules removed",
            extra={
                "event": "pronunciation.rules.removed",
                "project_id": project_id,
                "attributes": {"count": len(rules)},
            },
        )
        return len(rules)

    def list_voices(self) -> List[Dict[str, Any]]:
        return self._client.list_voices()


__all__ = [
    "DictionaryInfo",
    "PronunciationCorrection",
    "PronunciationService",
    "SyncResult",
]
