import logging

import ffmpeg
from django.conf import settings

logger = logging.getLogger(__name__)


def _duration_from_probe(info: dict) -> float | None:
    fmt = info.get('format') or {}
    if fmt.get('duration'):
        return float(fmt['duration'])
    streams = [float(s['duration']) for s in info.get('streams') or [] if s.get('duration')]
    return max(streams) if streams else None


def probe_duration(video_url: str, nominal_seconds: float, timeout_seconds: float | None = None) -> float:
    """Measure the real length of a clip with ffprobe.

    Providers do not always return the length that was requested, so the
    measured value is used for accounting. Any probe failure falls back to
    ``nominal_seconds``. Network reads stall out after ``timeout_seconds``
    (``PROBE_TIMEOUT_SECONDS`` by default).
    """
    if timeout_seconds is None:
        timeout_seconds = settings.PROBE_TIMEOUT_SECONDS
    try:
        # rw_timeout is in microseconds
        info = ffmpeg.probe(video_url, rw_timeout=int(timeout_seconds * 1_000_000))
        measured = _duration_from_probe(info)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode('utf-8', 'replace') if isinstance(e.stderr, bytes) else e.stderr
        logger.warning('ffprobe failed for %s, using nominal %ss: %s', video_url, nominal_seconds, stderr)
        return float(nominal_seconds)
    except (OSError, ValueError, TypeError, KeyError) as e:
        logger.warning('Could not probe %s, using nominal %ss: %s', video_url, nominal_seconds, e)
        return float(nominal_seconds)
    if not measured or measured <= 0:
        logger.warning('No duration reported for %s, using nominal %ss', video_url, nominal_seconds)
        return float(nominal_seconds)
    return measured
