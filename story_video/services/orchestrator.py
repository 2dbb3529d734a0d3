"""Scene-by-scene clip generation with continuation chaining.

Scene *i+1* is submitted only after scene *i* reached a terminal state, with
the provider id of the last successful clip as its continuation reference.
Per-scene failures are recorded and skipped; auth errors, a failed first
scene, zero successes and a collapsed continuation chain end the run.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from ..exceptions import (
    BudgetExceeded,
    ContinuationNotWorking,
    GenerationFailed,
    JobCancelled,
    NoScenesSucceeded,
    PollingTimeout,
    ProviderAuthError,
    ProviderRequestError,
)
from .duration import probe_duration
from .merge_service import MergeOutcome, VideoMerger, dedupe_urls
from .polling import TIMEOUT
from .story_context import StoryContext, build_prompt, extract_context
from .storyboard import Storyboard, build_storyboard

logger = logging.getLogger(__name__)

PLANNING_PROGRESS = 10
GENERATION_SPAN = 80
MERGE_PROGRESS = 90


@dataclass
class SceneResult:
    scene_index: int
    description: str
    prompt: str
    continuation_ref: Optional[str] = None
    provider_job_id: Optional[str] = None
    video_url: Optional[str] = None
    actual_duration_seconds: Optional[float] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return bool(self.video_url)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PipelineUpdate:
    progress: int
    current_step: str
    scenes: list[SceneResult]
    storyboard: Optional[Storyboard] = None
    context: Optional[StoryContext] = None
    warnings: list[dict] = field(default_factory=list)


@dataclass
class PipelineResult:
    storyboard: Storyboard
    context: StoryContext
    scenes: list[SceneResult]
    merge: MergeOutcome
    total_duration_seconds: float
    warnings: list[dict] = field(default_factory=list)

    @property
    def successful_scenes(self) -> list[SceneResult]:
        return [s for s in self.scenes if s.succeeded]


class SequentialOrchestrator:
    def __init__(self, provider, merger: VideoMerger | None = None,
                 probe: Callable[[str, float], float] = probe_duration,
                 on_update: Callable[[PipelineUpdate], None] | None = None,
                 should_cancel: Callable[[], bool] | None = None,
                 max_scenes: int = 7, scene_seconds: int = 9, target_seconds: float = 60,
                 cost_per_clip: float = 0.25, max_budget: float | None = 2.00):
        self.provider = provider
        self.merger = merger or VideoMerger()
        self.probe = probe
        self.on_update = on_update
        self.should_cancel = should_cancel
        self.max_scenes = max_scenes
        self.scene_seconds = scene_seconds
        self.target_seconds = target_seconds
        self.cost_per_clip = cost_per_clip
        self.max_budget = max_budget

        self.scenes: list[SceneResult] = []
        self.warnings: list[dict] = []
        self.progress = 0
        self.storyboard: Storyboard | None = None
        self.context: StoryContext | None = None

    def _emit(self, progress: int, step: str) -> None:
        self.progress = max(self.progress, progress)
        if self.on_update:
            self.on_update(PipelineUpdate(
                progress=self.progress,
                current_step=step,
                scenes=list(self.scenes),
                storyboard=self.storyboard,
                context=self.context,
                warnings=list(self.warnings),
            ))

    def _check_cancel(self) -> None:
        if self.should_cancel and self.should_cancel():
            raise JobCancelled('Cancelled by user')

    def _check_budget(self, scene_count: int) -> None:
        if scene_count > self.max_scenes:
            raise BudgetExceeded(f'{scene_count} scenes exceed the maximum of {self.max_scenes}')
        estimated = scene_count * self.cost_per_clip
        if self.max_budget is not None and estimated > self.max_budget:
            raise BudgetExceeded(
                f'Estimated cost ${estimated:.2f} exceeds maximum budget ${self.max_budget:.2f}'
            )

    def plan(self, script: str) -> Storyboard:
        self.storyboard = build_storyboard(script, max_scenes=self.max_scenes, scene_seconds=self.scene_seconds)
        self.context = extract_context(script)
        self._check_budget(len(self.storyboard.scenes))
        names = ', '.join(c.name for c in self.context.characters)
        self._emit(PLANNING_PROGRESS,
                   f'Storyboard created ({len(self.storyboard.scenes)} scenes). Characters: {names}')
        return self.storyboard

    def _generate_scene(self, scene, total: int, continuation_ref: str | None):
        prompt = build_prompt(self.context, scene, is_continuation=scene.index > 1)
        result = SceneResult(scene_index=scene.index, description=scene.description, prompt=prompt,
                             continuation_ref=continuation_ref)
        self._emit(self.progress, f'Generating clip {scene.index}/{total}...')

        def on_attempt(attempt, max_attempts, state):
            self._emit(self.progress,
                       f'Polling clip {scene.index}/{total} (attempt {attempt}/{max_attempts}, {state or "unknown"})')

        try:
            result.provider_job_id = self.provider.submit(prompt, continuation_ref=continuation_ref)
            poll = self.provider.await_terminal(result.provider_job_id, on_attempt=on_attempt,
                                                should_cancel=self.should_cancel)
            if not poll.succeeded:
                error_cls = PollingTimeout if poll.status == TIMEOUT else GenerationFailed
                raise error_cls(poll.error or 'Generation failed')
        except (ProviderRequestError, GenerationFailed, PollingTimeout, JobCancelled) as e:
            result.error = str(e)
            result.error_type = type(e).__name__
            return result, e

        result.video_url = poll.video_url
        result.actual_duration_seconds = self.probe(poll.video_url, scene.target_duration_seconds)
        return result, None

    def generate(self) -> list[SceneResult]:
        scenes = self.storyboard.scenes
        total = len(scenes)
        continuation_ref = None
        accumulated = 0.0

        for attempted, scene in enumerate(scenes, start=1):
            self._check_cancel()
            result, error = self._generate_scene(scene, total, continuation_ref)
            self.scenes.append(result)
            progress = PLANNING_PROGRESS + math.floor(GENERATION_SPAN * attempted / total)

            if isinstance(error, JobCancelled):
                self._emit(self.progress, f'Cancelled during clip {scene.index}/{total}')
                raise error
            if isinstance(error, ProviderAuthError):
                self._emit(self.progress, f'Authentication failed on clip {scene.index}/{total}')
                raise error

            if not result.succeeded:
                logger.warning('Clip %s/%s failed: %s', scene.index, total, result.error)
                if scene.index == 1:
                    self._emit(self.progress, f'Clip 1/{total} failed')
                    raise NoScenesSucceeded(f'First clip failed, cannot continue: {result.error}') from error
                self._emit(progress, f'Clip {scene.index}/{total} failed, continuing')
                continue

            continuation_ref = result.provider_job_id
            accumulated += result.actual_duration_seconds or 0
            logger.info('Clip %s/%s done (%.1fs, %.1fs total): %s',
                        scene.index, total, result.actual_duration_seconds or 0, accumulated, result.video_url)
            self._emit(progress, f'Clip {scene.index}/{total} completed ({accumulated:.0f}s)')
            if accumulated >= self.target_seconds:
                logger.info('Reached %.1fs of footage after %s clips, stopping early', accumulated, scene.index)
                break
        return self.scenes

    def _check_continuity(self, successful: list[SceneResult]) -> list[str]:
        urls = [s.video_url for s in successful]
        unique, duplicates = dedupe_urls(urls)
        if duplicates:
            self.warnings.append({
                'type': 'duplicate_clips',
                'message': f'{len(duplicates)} clip(s) repeated an earlier video URL; continuation may not be working',
                'duplicates': duplicates,
            })
        if len(unique) == 1 and len(successful) > 1:
            raise ContinuationNotWorking(
                f'All {len(successful)} clips returned the same video; continuation is not working'
            )
        return urls

    def _total_duration(self, successful: list[SceneResult], merge: MergeOutcome) -> float:
        durations = {}
        for s in successful:
            durations.setdefault(s.video_url, s.actual_duration_seconds or 0)
        if merge.concatenated:
            return sum(durations.values())
        return durations.get(merge.artifact, 0.0)

    def run(self, script: str) -> PipelineResult:
        self.plan(script)
        self.generate()

        successful = [s for s in self.scenes if s.succeeded]
        if not successful:
            raise NoScenesSucceeded('No videos generated')
        urls = self._check_continuity(successful)

        self._check_cancel()
        self._emit(MERGE_PROGRESS, f'Merging {len(successful)} clips into final video...')
        merge = self.merger.merge(urls)
        if merge.degraded:
            self.warnings.append({'type': 'merge_degraded', 'message': f'Using first clip only: {merge.error}'})

        return PipelineResult(
            storyboard=self.storyboard,
            context=self.context,
            scenes=list(self.scenes),
            merge=merge,
            total_duration_seconds=self._total_duration(successful, merge),
            warnings=list(self.warnings),
        )
