import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Optional

import ffmpeg
import httpx

from ..exceptions import MergeFailure

logger = logging.getLogger(__name__)


@dataclass
class MergeOutcome:
    artifact: str
    unique_urls: list[str]
    duplicates: list[str] = field(default_factory=list)
    concatenated: bool = False
    degraded: bool = False
    error: Optional[str] = None


def dedupe_urls(urls: list[str]) -> tuple[list[str], list[str]]:
    """Return ``(unique, duplicates)``; ``unique`` keeps first-seen order."""
    seen = set()
    unique, duplicates = [], []
    for url in urls:
        if url in seen:
            duplicates.append(url)
            continue
        seen.add(url)
        unique.append(url)
    return unique, duplicates


def ffmpeg_available() -> bool:
    return shutil.which('ffmpeg') is not None


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning('Could not remove temp file %s: %s', path, e)


def _download_to_temp(url: str, tmp_dir: str | None = None) -> str:
    fd, path = tempfile.mkstemp(suffix='.mp4', dir=tmp_dir)
    os.close(fd)
    try:
        with httpx.stream('GET', url, timeout=120, follow_redirects=True) as r:
            r.raise_for_status()
            with open(path, 'wb') as f:
                for chunk in r.iter_bytes():
                    f.write(chunk)
    except Exception:
        _remove_quietly(path)
        raise
    return path


def _concat_with_ffmpeg(paths: list[str], tmp_dir: str | None = None) -> str:
    list_fd, list_path = tempfile.mkstemp(suffix='.txt', dir=tmp_dir)
    os.close(list_fd)
    out_fd, out_path = tempfile.mkstemp(suffix='.mp4', dir=tmp_dir)
    os.close(out_fd)
    try:
        with open(list_path, 'w', encoding='utf-8') as f:
            for p in paths:
                escaped = p.replace("'", "'\\''")
                f.write(f"file '{escaped}'\n")
        (
            ffmpeg
            .input(list_path, format='concat', safe=0)
            .output(out_path, c='copy')
            .run(quiet=True, overwrite_output=True)
        )
    except ffmpeg.Error as e:
        _remove_quietly(out_path)
        stderr = e.stderr.decode('utf-8', 'replace') if isinstance(e.stderr, bytes) else str(e)
        raise MergeFailure(f'ffmpeg concat failed: {stderr[-500:]}') from e
    except OSError as e:
        _remove_quietly(out_path)
        raise MergeFailure(f'ffmpeg could not be run: {e}') from e
    finally:
        _remove_quietly(list_path)
    return out_path


class VideoMerger:
    """Concatenates ordered clips into one file with the ffmpeg concat demuxer.

    Streams are copied, not re-encoded. A single unique clip is returned as-is;
    a missing ffmpeg binary or a failed download/concat degrades to the first
    clip instead of failing the job.
    """

    def __init__(self, tmp_dir: str | None = None):
        self.tmp_dir = tmp_dir

    def merge(self, urls: list[str]) -> MergeOutcome:
        unique, duplicates = dedupe_urls(urls)
        if not unique:
            raise MergeFailure('Nothing to merge')
        if duplicates:
            logger.warning('%s duplicate clip URL(s) detected, merging %s unique clip(s) only',
                           len(duplicates), len(unique))
        if len(unique) == 1:
            return MergeOutcome(artifact=unique[0], unique_urls=unique, duplicates=duplicates)
        if not ffmpeg_available():
            logger.warning('FFmpeg is not installed or not in PATH, using the first clip as the result')
            return MergeOutcome(artifact=unique[0], unique_urls=unique, duplicates=duplicates,
                                degraded=True, error='ffmpeg unavailable')

        downloaded = []
        try:
            for i, url in enumerate(unique, start=1):
                logger.info('Downloading clip %s/%s', i, len(unique))
                downloaded.append(_download_to_temp(url, self.tmp_dir))
            merged_path = _concat_with_ffmpeg(downloaded, self.tmp_dir)
        except (MergeFailure, httpx.HTTPError, OSError) as e:
            logger.error('Merging %s clips failed, using the first clip: %s', len(unique), e)
            return MergeOutcome(artifact=unique[0], unique_urls=unique, duplicates=duplicates,
                                degraded=True, error=str(e))
        finally:
            for p in downloaded:
                _remove_quietly(p)

        logger.info('Merged %s clips into %s', len(unique), merged_path)
        return MergeOutcome(artifact=merged_path, unique_urls=unique, duplicates=duplicates, concatenated=True)
