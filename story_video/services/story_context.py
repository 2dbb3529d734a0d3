"""Derive characters, setting and style once per script so every clip stays consistent."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field

from .storyboard import Scene

DEFAULT_CHARACTER_NAME = 'Main Character'
DEFAULT_CHARACTER_DESCRIPTION = 'A young student or community member'
DEFAULT_APPEARANCE = 'Consistent appearance throughout the story'
DEFAULT_SETTING = 'community setting'
DEFAULT_VISUAL_STYLE = '2D animation with bright colors, clean animation style, educational and inspiring'
DEFAULT_THEME = 'Sustainable Development Goals'
MAX_NAMED_CHARACTERS = 3

COMMON_NAMES = ('maria', 'aisha', 'ahmed', 'sara', 'ali', 'fatima', 'omar', 'layla', 'yusuf', 'zainab')

CHARACTER_KEYWORDS = (
    'student', 'child', 'boy', 'girl', 'teacher', 'villager', 'person', 'people',
    'young', 'old', 'teenager', 'kid', 'adult', 'woman', 'man',
)

# Words that start sentences often enough to look like names.
NOT_NAMES = frozenset({
    'the', 'a', 'an', 'and', 'but', 'or', 'so', 'then', 'when', 'while', 'after', 'before',
    'one', 'every', 'each', 'in', 'on', 'at', 'by', 'for', 'from', 'with', 'without', 'to',
    'this', 'that', 'these', 'those', 'there', 'here', 'they', 'she', 'he', 'we', 'it', 'his',
    'her', 'their', 'our', 'my', 'you', 'i', 'scene', 'once', 'today', 'now', 'finally', 'soon',
    'later', 'suddenly', 'together', 'everyone', 'someone', 'nobody', 'sdg', 'sdgs',
})

SETTING_KEYWORDS = (
    ('village', ('village', 'town', 'community', 'neighborhood')),
    ('school', ('school', 'classroom', 'education', 'student')),
    ('ocean', ('ocean', 'sea', 'beach', 'coast', 'water')),
    ('city', ('city', 'urban', 'street', 'building')),
    ('nature', ('forest', 'tree', 'park', 'garden', 'nature')),
    ('home', ('home', 'house', 'family', 'kitchen')),
    ('desert', ('desert', 'dry', 'arid', 'sand')),
)

STYLE_CUES = (
    (('2d', 'animation', 'cartoon'), '2D animation with bright colors, clean lines, educational style'),
    (('realistic', 'live action'), 'Realistic cinematic style'),
    (('watercolor', 'paint'), 'Watercolor painting style'),
)

THEME_KEYWORDS = (
    ('water', ('water', 'clean', 'drink', 'tap', 'conserve')),
    ('climate', ('climate', 'weather', 'temperature', 'global warming')),
    ('ocean', ('ocean', 'plastic', 'waste', 'pollution', 'sea')),
    ('education', ('school', 'learn', 'teach', 'education', 'student')),
    ('poverty', ('poor', 'poverty', 'hunger', 'food', 'money')),
    ('health', ('health', 'doctor', 'hospital', 'medicine', 'sick')),
)


@dataclass(frozen=True)
class Character:
    name: str
    description: str
    appearance: str = DEFAULT_APPEARANCE


@dataclass(frozen=True)
class StoryContext:
    characters: list[Character] = field(default_factory=list)
    setting: str = DEFAULT_SETTING
    visual_style: str = DEFAULT_VISUAL_STYLE
    theme: str = DEFAULT_THEME
    summary: str = 'A story about making positive change'

    def to_dict(self) -> dict:
        return asdict(self)


def default_context() -> StoryContext:
    return StoryContext(
        characters=[Character(DEFAULT_CHARACTER_NAME, DEFAULT_CHARACTER_DESCRIPTION)],
    )


def _contains_word(text: str, keyword: str) -> bool:
    return re.search(rf'\b{re.escape(keyword)}\b', text) is not None


def _extract_names(script: str) -> list[str]:
    found: dict[str, None] = {}
    for match in re.finditer(r'\b([A-Z][a-z]{2,18})\b', script):
        word = match.group(1)
        if word.lower() not in NOT_NAMES:
            found.setdefault(word, None)
    lowered = script.lower()
    for name in COMMON_NAMES:
        if _contains_word(lowered, name):
            found.setdefault(name.capitalize(), None)
    return list(found)


def _extract_characters(script: str) -> list[Character]:
    lowered = script.lower()
    descriptions = []
    for keyword in CHARACTER_KEYWORDS:
        match = re.search(rf'\b{keyword}\b', lowered)
        if match:
            start = max(0, match.start() - 50)
            descriptions.append(script[start:match.start() + 100].strip())

    names = _extract_names(script)
    if names:
        return [
            Character(name=name, description=descriptions[0] if descriptions else f'A character named {name}')
            for name in names[:MAX_NAMED_CHARACTERS]
        ]
    if descriptions:
        return [Character(name=DEFAULT_CHARACTER_NAME, description=descriptions[0])]
    return []


def _first_label(lowered: str, table) -> str | None:
    for label, keywords in table:
        if any(_contains_word(lowered, k) for k in keywords):
            return label
    return None


def _extract_visual_style(lowered: str) -> str | None:
    for cues, style in STYLE_CUES:
        if any(cue in lowered for cue in cues):
            return style
    return None


def extract_context(script: str) -> StoryContext:
    """Best-effort, deterministic extraction. Always returns a full context."""
    text = (script or '').strip()
    if len(text) < 10:
        return default_context()

    lowered = text.lower()
    defaults = default_context()
    return StoryContext(
        characters=_extract_characters(text) or defaults.characters,
        setting=_first_label(lowered, SETTING_KEYWORDS) or DEFAULT_SETTING,
        visual_style=_extract_visual_style(lowered) or DEFAULT_VISUAL_STYLE,
        theme=_first_label(lowered, THEME_KEYWORDS) or DEFAULT_THEME,
        summary=text[:200],
    )


def build_prompt(context: StoryContext, scene: Scene, is_continuation: bool = False) -> str:
    characters = ', '.join(
        f'{c.name} ({c.description})' if c.description else c.name for c in context.characters
    )
    prompt = f'A 2D animation about {context.theme}. '
    if is_continuation:
        prompt += (
            f'Continue the previous scene seamlessly. Same characters: {characters}. '
            f'Same environment: {context.setting}. Same visual style: {context.visual_style}. '
            'No new characters. No style changes. '
        )
    else:
        prompt += (
            f'Characters: {characters}. Environment: {context.setting}. '
            f'Visual style: {context.visual_style}. '
        )
    prompt += f'{scene.description.rstrip(".")}. Bright colors, clean animation style, educational and inspiring.'
    return prompt
