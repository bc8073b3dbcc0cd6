"""
Flash Violation Tracker - WCAG-style "more than 3 flashes per second".

Discrete 1-second windows, each starting at the first flash after the
previous window closed. A window closes on the first frame whose timestamp
reaches ``start + 1.0``; a flash on that frame is counted before the window
closes. If it collected more than ``flash_threshold`` flashes, a
ViolationWindow is recorded.

Independently, every flash is clustered: a gap larger than
``cluster_gap_threshold`` since the previous flash closes the current cluster
and opens a new one.

Frame arithmetic: start and end frames are BOTH inclusive. The end frame is
the last frame observed before the boundary was crossed, i.e. the current
frame index minus one.
"""

from dataclasses import dataclass, field, replace

from ..core.constants import (
    CLUSTER_GAP_INTERVAL_FACTOR,
    DEFAULT_CLUSTER_GAP,
    DEFAULT_FLASH_THRESHOLD,
    MAX_CLUSTER_GAP,
    MIN_CLUSTER_GAP,
    VIOLATION_WINDOW_SECONDS,
)
from ..core.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FlashEvent:
    timestamp: float  # Sekunden
    frame_index: int


@dataclass
class FlashCluster:
    """Maximal run of flashes whose gaps stay within the cluster threshold."""

    start_time: float
    end_time: float
    start_frame: int
    end_frame: int
    count: int = 1
    flashes: list[FlashEvent] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def overlaps(self, start: float, end: float) -> bool:
        return self.start_time <= end and self.end_time >= start

    def snapshot(self) -> "FlashCluster":
        return replace(self, flashes=list(self.flashes))


@dataclass(frozen=True)
class ViolationWindow:
    start_time: float
    end_time: float
    start_frame: int
    end_frame: int  # inclusive
    frame_count: int
    flash_count: int
    associated_clusters: tuple[FlashCluster, ...] = ()

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class FlashViolationUpdate:
    """Per-frame tracker output."""

    in_window: bool
    flashes_in_window: int
    violation_frame_count: int
    violation_window_count: int
    cluster_count: int


def recommended_cluster_gap(analysis_interval: float) -> float:
    """
    Cluster gap adapted to the sampling interval.

    Args:
        analysis_interval: Seconds between analyzed frames

    Returns:
        clamp(interval * 3.5, 0.05, 2.0)
    """
    return max(MIN_CLUSTER_GAP, min(MAX_CLUSTER_GAP, analysis_interval * CLUSTER_GAP_INTERVAL_FACTOR))


class FlashViolationTracker:
    """Frame-accurate 1-second flash window state machine with clustering."""

    def __init__(
        self,
        flash_threshold: int = DEFAULT_FLASH_THRESHOLD,
        cluster_gap_threshold: float = DEFAULT_CLUSTER_GAP,
    ) -> None:
        """
        Args:
            flash_threshold: A window with more flashes than this is a violation
            cluster_gap_threshold: Max gap in seconds between flashes of one cluster

        Raises:
            ConfigurationError: If a threshold is out of range
        """
        if flash_threshold < 0:
            raise ConfigurationError(
                "flash_threshold must be non-negative",
                option="flash_threshold",
                value=flash_threshold,
            )
        if not 0 < cluster_gap_threshold <= MAX_CLUSTER_GAP:
            raise ConfigurationError(
                f"cluster_gap_threshold must be in (0, {MAX_CLUSTER_GAP}]",
                option="cluster_gap_threshold",
                value=cluster_gap_threshold,
            )
        self.flash_threshold = flash_threshold
        self.cluster_gap_threshold = cluster_gap_threshold
        self.reset()

    def reset(self) -> None:
        """Clear all windows, clusters and counters."""
        self.violations: list[ViolationWindow] = []
        self.closed_clusters: list[FlashCluster] = []
        self.current_cluster: FlashCluster | None = None
        self.all_flashes: list[FlashEvent] = []

        self.window_start_time: float | None = None
        self.window_start_frame: int | None = None
        self.window_flashes: list[FlashEvent] = []

        self.last_flash_time: float | None = None
        self.total_violation_frames = 0
        self.total_analyzed_frames = 0

    @property
    def in_window(self) -> bool:
        return self.window_start_time is not None

    @property
    def clusters(self) -> list[FlashCluster]:
        """Closed clusters followed by the open one, if any."""
        if self.current_cluster is None:
            return list(self.closed_clusters)
        return [*self.closed_clusters, self.current_cluster]

    def update(self, timestamp: float, is_flash: bool, frame_index: int) -> FlashViolationUpdate:
        """
        Advance the state machine by one frame.

        Args:
            timestamp: Frame time in seconds (non-decreasing)
            is_flash: Whether a flash was detected on this frame
            frame_index: Index of this frame

        Returns:
            FlashViolationUpdate snapshot
        """
        self.total_analyzed_frames += 1

        if is_flash:
            event = FlashEvent(timestamp, frame_index)
            self.all_flashes.append(event)

            if not self.in_window:
                self.window_start_time = timestamp
                self.window_start_frame = frame_index
                self.window_flashes = [event]
            else:
                self.window_flashes.append(event)

            self._cluster(event)

        # A flash on the boundary frame still counts toward the closing window
        if self.in_window and timestamp >= self.window_start_time + VIOLATION_WINDOW_SECONDS:
            self._close_window(frame_index)

        return FlashViolationUpdate(
            in_window=self.in_window,
            flashes_in_window=len(self.window_flashes),
            violation_frame_count=self.total_violation_frames,
            violation_window_count=len(self.violations),
            cluster_count=len(self.closed_clusters) + (1 if self.current_cluster else 0),
        )

    def finalize(self) -> list[FlashCluster]:
        """Close the open cluster at the end of analysis and return all clusters."""
        if self.current_cluster is not None:
            self.closed_clusters.append(self.current_cluster)
            self.current_cluster = None
        return list(self.closed_clusters)

    def _cluster(self, event: FlashEvent) -> None:
        gap_exceeded = (
            self.last_flash_time is None
            or event.timestamp - self.last_flash_time > self.cluster_gap_threshold
        )
        if gap_exceeded or self.current_cluster is None:
            if self.current_cluster is not None:
                self.closed_clusters.append(self.current_cluster)
            self.current_cluster = FlashCluster(
                start_time=event.timestamp,
                end_time=event.timestamp,
                start_frame=event.frame_index,
                end_frame=event.frame_index,
                count=1,
                flashes=[event],
            )
        else:
            cluster = self.current_cluster
            cluster.end_time = event.timestamp
            cluster.end_frame = event.frame_index
            cluster.count += 1
            cluster.flashes.append(event)
        self.last_flash_time = event.timestamp

    def _close_window(self, frame_index: int) -> None:
        flash_count = len(self.window_flashes)
        if flash_count > self.flash_threshold:
            start_time = self.window_start_time
            end_time = start_time + VIOLATION_WINDOW_SECONDS
            # Previous frame is the last one inside the window; both ends inclusive
            end_frame = frame_index - 1
            frame_count = end_frame - self.window_start_frame + 1

            window = ViolationWindow(
                start_time=start_time,
                end_time=end_time,
                start_frame=self.window_start_frame,
                end_frame=end_frame,
                frame_count=frame_count,
                flash_count=flash_count,
                associated_clusters=tuple(
                    c.snapshot() for c in self.clusters if c.overlaps(start_time, end_time)
                ),
            )
            self.violations.append(window)
            self.total_violation_frames += frame_count
            logger.info(
                f"Flash violation: {flash_count} flashes in "
                f"[{start_time:.3f}s, {end_time:.3f}s), frames {self.window_start_frame}-{end_frame}"
            )

        self.window_start_time = None
        self.window_start_frame = None
        self.window_flashes = []
