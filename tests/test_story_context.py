"""Tests for story context extraction and prompt building."""

from story_video.services.story_context import (
    DEFAULT_CHARACTER_NAME,
    DEFAULT_SETTING,
    DEFAULT_THEME,
    DEFAULT_VISUAL_STYLE,
    build_prompt,
    default_context,
    extract_context,
)
from story_video.services.storyboard import Scene


def test_extracts_named_characters_setting_and_theme(long_script):
    context = extract_context(long_script)

    names = [c.name for c in context.characters]
    assert names[0] == 'Aisha'
    assert len(names) <= 3
    assert 'She' not in names
    assert 'The' not in names
    assert context.setting == 'village'
    assert context.theme == 'water'


def test_style_cue_overrides_default():
    context = extract_context('A watercolor story about a boy who cleans the beach every weekend.')

    assert context.visual_style == 'Watercolor painting style'
    assert context.setting == 'ocean'


def test_unnamed_character_gets_default_name():
    context = extract_context('a young student decides to plant trees around the school grounds.')

    assert context.characters[0].name == DEFAULT_CHARACTER_NAME
    assert 'student' in context.characters[0].description


def test_defaults_for_short_input():
    context = extract_context('hi')

    assert context == default_context()
    assert context.setting == DEFAULT_SETTING
    assert context.visual_style == DEFAULT_VISUAL_STYLE
    assert context.theme == DEFAULT_THEME


def test_extraction_is_deterministic(long_script):
    assert extract_context(long_script) == extract_context(long_script)


def test_first_scene_prompt_introduces_context(long_script):
    context = extract_context(long_script)
    prompt = build_prompt(context, Scene(1, 'Aisha finds the well empty.'))

    assert prompt.startswith('A 2D animation about water. ')
    assert 'Characters: Aisha' in prompt
    assert 'Environment: village' in prompt
    assert 'Continue the previous scene' not in prompt
    assert prompt.endswith('Aisha finds the well empty. Bright colors, clean animation style, educational and inspiring.')


def test_continuation_prompt_locks_characters_and_style(long_script):
    context = extract_context(long_script)
    prompt = build_prompt(context, Scene(2, 'They build the collector'), is_continuation=True)

    assert 'Continue the previous scene seamlessly.' in prompt
    assert 'Same characters: Aisha' in prompt
    assert 'Same environment: village' in prompt
    assert 'No new characters. No style changes.' in prompt
    assert 'They build the collector. Bright colors' in prompt
