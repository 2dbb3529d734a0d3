"""Tests for clip duration probing."""

import ffmpeg

from story_video.services import duration
from story_video.services.duration import probe_duration


def test_uses_container_duration(monkeypatch):
    info = {'format': {'duration': '8.96'}, 'streams': []}
    monkeypatch.setattr(duration.ffmpeg, 'probe', lambda url, **kwargs: info)

    assert probe_duration('https://cdn.test/a.mp4', 9) == 8.96


def test_falls_back_to_longest_stream(monkeypatch):
    info = {'format': {}, 'streams': [{'duration': '5.0'}, {'duration': '5.04'}, {'codec_type': 'data'}]}
    monkeypatch.setattr(duration.ffmpeg, 'probe', lambda url, **kwargs: info)

    assert probe_duration('https://cdn.test/a.mp4', 9) == 5.04


def test_probe_error_returns_nominal(monkeypatch):
    def fail(url, **kwargs):
        raise ffmpeg.Error('ffprobe', b'', b'Server returned 403 Forbidden')

    monkeypatch.setattr(duration.ffmpeg, 'probe', fail)

    assert probe_duration('https://cdn.test/a.mp4', 9) == 9.0


def test_missing_binary_returns_nominal(monkeypatch):
    def missing(url, **kwargs):
        raise FileNotFoundError('ffprobe')

    monkeypatch.setattr(duration.ffmpeg, 'probe', missing)

    assert probe_duration('https://cdn.test/a.mp4', 5) == 5.0


def test_zero_duration_returns_nominal(monkeypatch):
    monkeypatch.setattr(duration.ffmpeg, 'probe', lambda url, **kwargs: {'format': {'duration': '0'}})

    assert probe_duration('https://cdn.test/a.mp4', 9) == 9.0


def test_read_timeout_is_passed_to_ffprobe(monkeypatch, settings):
    settings.PROBE_TIMEOUT_SECONDS = 30
    calls = []

    def probe(url, **kwargs):
        calls.append(kwargs)
        return {'format': {'duration': '9.0'}}

    monkeypatch.setattr(duration.ffmpeg, 'probe', probe)

    probe_duration('https://cdn.test/a.mp4', 9)
    probe_duration('https://cdn.test/b.mp4', 9, timeout_seconds=2.5)

    assert calls == [{'rw_timeout': 30_000_000}, {'rw_timeout': 2_500_000}]
