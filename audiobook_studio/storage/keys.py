"""Object-storage key conventions for project artifacts.

Every artifact of a project lives under ``{user_id}/{project_id}/``. The
remote pipeline writes intermediate storyboard files under ``temp/`` and
rendered videos under ``output/``.
"""

from __future__ import annotations

import posixpath

STATUS_FILENAME = "project_status.json"
CORRECTIONS_FILENAME = "pronunciation-corrections.json"
OLDSET_SUFFIX = "oldset"


def project_prefix(user_id: str, project_id: str) -> str:
    return f"{user_id}/{project_id}/"


def project_key(user_id: str, project_id: str, filename: str) -> str:
    return f"{user_id}/{project_id}/{filename}"


def status_key(user_id: str, project_id: str) -> str:
    return project_key(user_id, project_id, STATUS_FILENAME)


def corrections_key(user_id: str, project_id: str) -> str:
    return project_key(user_id, project_id, CORRECTIONS_FILENAME)


def temp_prefix(user_id: str, project_id: str) -> str:
    return f"{user_id}/{project_id}/temp/"


def output_prefix(user_id: str, project_id: str) -> str:
    return f"{user_id}/{project_id}/output/"


def dictionary_key(user_id: str, project_id: str, dictionary_name: str) -> str:
    return project_key(user_id, project_id, f"{dictionary_name}.pls")


def archived_image_key(image_key: str) -> str:
    """``.../chapter1_1_image3.jpg`` -> ``.../chapter1_1_image3.jpgoldset``."""
    return f"{image_key}{OLDSET_SUFFIX}"


def saved_image_key(image_key: str, version: int) -> str:
    root, ext = posixpath.splitext(image_key)
    return f"{root}_sbsave{version}{ext}"


def alternate_audio_key(audio_key: str) -> str:
    """``.../chapter1_1_audio3.mp3`` -> ``.../chapter1_1_audio3_sbsave.mp3``."""
    root, ext = posixpath.splitext(audio_key)
    return f"{root}_sbsave{ext}"


def basename(key: str) -> str:
    return posixpath.basename(key)


__all__ = [
    "CORRECTIONS_FILENAME",
    "STATUS_FILENAME",
    "alternate_audio_key",
    "archived_image_key",
    "basename",
    "corrections_key",
    "dictionary_key",
    "output_prefix",
    "project_key",
    "project_prefix",
    "saved_image_key",
    "status_key",
    "temp_prefix",
]
