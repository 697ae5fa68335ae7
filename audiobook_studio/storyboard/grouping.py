"""Reconstruct storyboard items from object-storage keys.

The remote pipeline writes one file per artifact under ``{uid}/{pid}/temp/``:

* ``chapterN_M_imageK.jpg`` with ``_sbsaveV`` saved variants and an
  archived ``chapterN_M_imageK.jpgoldset``,
* ``chapterN_M_audioK.mp3`` with an ``_sbsave`` alternate track,
* ``chapterN_M_chunkK.txt`` holding the narrated text.

Items are keyed by ``K``. Keys that match none of the patterns are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .. import logging_manager
from ..storage.object_store import StoredObject

logger = logging_manager.get_logger().getChild("storyboard.grouping")

_IMAGE_RE = re.compile(r"chapter(\d+)_(\d+)_image(\d+)(?:_sbsave(\d+))?\.jpg$")
_OLDSET_RE = re.compile(r"chapter(\d+)_(\d+)_image(\d+)\.jpgoldset$")
_AUDIO_RE = re.compile(r"chapter(\d+)_(\d+)_audio(\d+)(_sbsave)?\.mp3$")
_CHUNK_RE = re.compile(r"chapter(\d+)_(\d+)_chunk(\d+)\.txt$")
_VIDEO_EXTENSIONS = (".mp4", ".m4v", ".mov", ".webm")


@dataclass
class ImageArtifact:
    key: Optional[str] = None
    url: Optional[str] = None
    saved_versions: List[str] = field(default_factory=list)
    oldset_key: Optional[str] = None

    @property
    def action(self) -> str:
        """``restore`` when an archived set exists, otherwise ``replace``."""
        return "restore" if self.oldset_key else "replace"


@dataclass
class AudioArtifact:
    key: Optional[str] = None
    url: Optional[str] = None
    saved_key: Optional[str] = None


@dataclass
class StoryboardItem:
    number: int
    chapter: Optional[int] = None
    chunk: Optional[int] = None
    image: ImageArtifact = field(default_factory=ImageArtifact)
    audio: AudioArtifact = field(default_factory=AudioArtifact)
    text_key: Optional[str] = None
    text: Optional[str] = None


@dataclass
class StoryboardSnapshot:
    items: List[StoryboardItem] = field(default_factory=list)
    videos: List[str] = field(default_factory=list)
    cover_key: Optional[str] = None

    def item(self, number: int) -> Optional[StoryboardItem]:
        for entry in self.items:
            if entry.number == number:
                return entry
        return None


def _saved_version(key: str) -> int:
    match = _IMAGE_RE.search(key)
    if match and match.group(4):
        return int(match.group(4))
    return 0


def group_storyboard_files(
    objects: Iterable[StoredObject | str],
    *,
    output_prefix: Optional[str] = None,
    cover_key: Optional[str] = None,
    url_for: Optional[Callable[[str], str]] = None,
) -> StoryboardSnapshot:
    """Group ``objects`` into storyboard items ordered by item number."""

    items: Dict[int, StoryboardItem] = {}
    videos: List[str] = []
    found_cover: Optional[str] = None

    def _item(number: int, chapter: int, chunk: int) -> StoryboardItem:
        entry = items.get(number)
        if entry is None:
            entry = StoryboardItem(number=number, chapter=chapter, chunk=chunk)
            items[number] = entry
        return entry

    for obj in objects:
        key = obj.key if isinstance(obj, StoredObject) else str(obj)
        if cover_key and key == cover_key:
            found_cover = key
            continue
        if output_prefix and key.startswith(output_prefix):
            if key.lower().endswith(_VIDEO_EXTENSIONS):
                videos.append(key)
            continue
        if "/temp/" not in key:
            continue

        match = _OLDSET_RE.search(key)
        if match:
            _item(int(match.group(3)), int(match.group(1)), int(match.group(2))).image.oldset_key = key
            continue

        match = _IMAGE_RE.search(key)
        if match:
            entry = _item(int(match.group(3)), int(match.group(1)), int(match.group(2)))
            if match.group(4):
                entry.image.saved_versions.append(key)
            else:
                entry.image.key = key
            continue

        match = _AUDIO_RE.search(key)
        if match:
            entry = _item(int(match.group(3)), int(match.group(1)), int(match.group(2)))
            if match.group(4):
                entry.audio.saved_key = key
            else:
                entry.audio.key = key
            continue

        match = _CHUNK_RE.search(key)
        if match:
            _item(int(match.group(3)), int(match.group(1)), int(match.group(2))).text_key = key
            continue

        logger.debug(
            "Ignoring unrecognised storyboard key",
            extra={"event": "storyboard.grouping.skip", "attributes": {"key": key}},
        )

    ordered = [items[number] for number in sorted(items)]
    for entry in ordered:
        entry.image.saved_versions.sort(key=_saved_version)
        if url_for is not None:
            if entry.image.key:
                entry.image.url = url_for(entry.image.key)
            if entry.audio.key:
                entry.audio.url = url_for(entry.audio.key)

    return StoryboardSnapshot(items=ordered, videos=sorted(videos), cover_key=found_cover)


__all__ = [
    "AudioArtifact",
    "ImageArtifact",
    "StoryboardItem",
    "StoryboardSnapshot",
    "group_storyboard_files",
]
