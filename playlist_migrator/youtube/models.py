"""
Data models for YouTube candidates and matching outcomes.

A Candidate is a video returned by the target catalog search and enriched
with the details the scorer needs. A MatchDecision records how the scorer
ranked a set of candidates for one source track.
"""

from dataclasses import dataclass, field
from typing import Any

from playlist_migrator.core.exceptions import ResponseFormatError
from playlist_migrator.core.models import Service
from playlist_migrator.utils import parse_iso8601_duration


@dataclass(frozen=True)
class Candidate:
    """
    Immutable representation of a YouTube video considered as a match.

    Attributes:
        video_id: YouTube video ID (11-character string).
                  Example: "dQw4w9WgXcQ"

        title: Video title as it appears on YouTube.
               Example: "Rick Astley - Never Gonna Give You Up (Official Video)"

        channel_title: Name of the uploading channel.
                       Example: "Rick Astley - Topic"

        duration_ms: Video duration in milliseconds, from contentDetails.

    Class Methods:
        from_video_resource: Create from a videos.list item.
    """
    video_id: str
    title: str
    channel_title: str
    duration_ms: int

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @classmethod
    def from_video_resource(cls, item: dict[str, Any]) -> "Candidate":
        """
        Create a Candidate from a YouTube Data API video resource.

        The resource must have been requested with part=snippet,contentDetails.

        Raises:
            ResponseFormatError: If the id, snippet or a parseable duration is missing.
        """
        video_id = item.get("id")
        snippet = item.get("snippet")
        content_details = item.get("contentDetails")

        if not isinstance(video_id, str) or not isinstance(snippet, dict) or not isinstance(content_details, dict):
            raise ResponseFormatError(
                "YouTube video resource is missing id, snippet or contentDetails",
                service=Service.TARGET.value,
                details={"video_id": video_id}
            )

        try:
            duration_ms = parse_iso8601_duration(content_details.get("duration", ""))
        except ValueError as e:
            raise ResponseFormatError(
                f"YouTube video {video_id} has an unparseable duration",
                service=Service.TARGET.value,
                details={"video_id": video_id, "duration": content_details.get("duration")}
            ) from e

        return cls(
            video_id=video_id,
            title=snippet.get("title") or "",
            channel_title=snippet.get("channelTitle") or "",
            duration_ms=duration_ms,
        )


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate together with its match score."""
    candidate: Candidate
    score: float


@dataclass(frozen=True)
class MatchDecision:
    """
    Outcome of scoring all candidates for one source track.

    Attributes:
        best: Highest-scoring candidate, None if there were no candidates.
        accepted: True if best.score is strictly above the threshold.
        threshold: The match_threshold the decision was made against.
        scored: Every candidate with its score, in catalog order.
    """
    best: ScoredCandidate | None
    accepted: bool
    threshold: float
    scored: tuple[ScoredCandidate, ...] = field(default_factory=tuple)

    @property
    def match(self) -> Candidate | None:
        """The accepted candidate, or None if no candidate was accepted."""
        if self.accepted and self.best is not None:
            return self.best.candidate
        return None
