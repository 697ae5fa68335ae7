"""Shell command lines understood by the remote production pipeline."""

from __future__ import annotations

from typing import Dict, Optional

from .status import PipelineStage

DEFAULT_SCRIPT = "python3 b2vp*"

STAGE_FLAGS: Dict[PipelineStage, str] = {
    PipelineStage.EBOOK_PREP: "-si",
    PipelineStage.STORYBOARD: "-ss",
    PipelineStage.PROOFS: "-sb",
    PipelineStage.AUDIOBOOK: "-sp",
}

VALID_MODES = ("validation", "production")


def quote(value: object) -> str:
    """Wrap ``value`` in double quotes, escaping characters the shell expands."""
    text = str(value if value is not None else "")
    for char in ("\\", '"', "$", "`"):
        text = text.replace(char, f"\\{char}")
    return f'"{text}"'


def build_pipeline_command(
    stage: PipelineStage,
    *,
    epub_filename: str,
    user_id: str,
    project_id: str,
    author: str,
    title: str,
    voice_name: str,
    mode: str = "validation",
    dictionary_name: Optional[str] = None,
    limit: Optional[int] = None,
    script: str = DEFAULT_SCRIPT,
) -> str:
    """Return the command line that runs ``stage`` for one project.

    Ebook preparation never carries a dictionary or an item limit. The other
    stages add ``-pd`` when a dictionary is known and ``-l`` when ``limit``
    is given.
    """

    if mode not in VALID_MODES:
        raise ValueError(f"Unknown pipeline mode: {mode}")
    stage = PipelineStage(stage)

    parts = [
        script,
        "-f",
        quote(epub_filename),
        "-uid",
        str(user_id),
        "-pid",
        str(project_id),
        "-a",
        quote(author),
        "-ti",
        quote(title),
        "-vn",
        quote(voice_name),
    ]
    if stage is not PipelineStage.EBOOK_PREP:
        if dictionary_name:
            parts.extend(["-pd", quote(dictionary_name)])
        if limit is not None:
            parts.extend(["-l", str(int(limit))])
    parts.extend([STAGE_FLAGS[stage], "-m", mode])
    return " ".join(parts)


__all__ = ["STAGE_FLAGS", "VALID_MODES", "build_pipeline_command", "quote"]
