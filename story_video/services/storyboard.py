"""Split a free-text script into an ordered, bounded list of scenes."""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field

DEFAULT_MAX_SCENES = 7
DEFAULT_SCENE_SECONDS = 9
DESCRIPTION_LIMIT = 300
TARGET_SENTENCE_SCENES = 5
FALLBACK_TITLE = 'SDG Animation'


@dataclass(frozen=True)
class Scene:
    index: int
    description: str
    target_duration_seconds: int = DEFAULT_SCENE_SECONDS


@dataclass
class Storyboard:
    title: str
    summary: str
    scenes: list[Scene] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'summary': self.summary,
            'scenes': [asdict(s) for s in self.scenes],
        }


def _paragraphs(text: str) -> list[str]:
    return [p.strip() for p in re.split(r'\n\s*\n', text) if p.strip()]


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in re.split(r'[.!?]+', text) if len(s.strip()) > 20]


def _segment(text: str, max_scenes: int) -> list[str]:
    paragraphs = _paragraphs(text)
    if len(paragraphs) >= 3:
        return paragraphs[:max_scenes]

    sentences = _sentences(text)
    if len(sentences) >= 3:
        per_scene = math.ceil(len(sentences) / TARGET_SENTENCE_SCENES)
        groups = []
        for start in range(0, len(sentences), per_scene):
            groups.append('. '.join(sentences[start:start + per_scene]))
        return groups[:max_scenes]

    chunk_size = max(200, len(text) // 5)
    chunks = []
    for start in range(0, len(text), chunk_size):
        if len(chunks) >= max_scenes:
            break
        chunk = text[start:start + chunk_size].strip()
        if chunk:
            chunks.append(chunk)
    return chunks


def fallback_storyboard(script: str, scene_seconds: int = DEFAULT_SCENE_SECONDS) -> Storyboard:
    preview = (script or '').strip()[:200]
    description = f'Opening scene: {preview[:250]}' if preview else 'Introduction to the story and setting'
    return Storyboard(
        title=FALLBACK_TITLE,
        summary=preview or 'A story about Sustainable Development Goals',
        scenes=[Scene(index=1, description=description, target_duration_seconds=scene_seconds)],
    )


def build_storyboard(script: str, max_scenes: int = DEFAULT_MAX_SCENES,
                     scene_seconds: int = DEFAULT_SCENE_SECONDS) -> Storyboard:
    """Turn ``script`` into a storyboard of 1..``max_scenes`` scenes.

    Tries paragraphs first, then groups of sentences, then fixed-size
    character chunks. Never raises: input that yields nothing falls back to a
    single scene summarising the script.
    """
    text = (script or '').strip()
    if len(text) < 10:
        return fallback_storyboard(text, scene_seconds)

    descriptions = [d[:DESCRIPTION_LIMIT].strip() for d in _segment(text, max_scenes)]
    descriptions = [d for d in descriptions if d]
    if not descriptions:
        return fallback_storyboard(text, scene_seconds)

    lines = [line.strip() for line in text.split('\n') if line.strip()]
    title = lines[0] if lines else text.split('.')[0].strip() or FALLBACK_TITLE
    scenes = [
        Scene(index=i, description=d, target_duration_seconds=scene_seconds)
        for i, d in enumerate(descriptions, start=1)
    ]
    return Storyboard(title=title[:100], summary=text[:200].strip(), scenes=scenes)
