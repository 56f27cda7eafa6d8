"""
Match scorer for playlist-migrator.

Scores a YouTube candidate against a Spotify track with a fixed heuristic:

    score = title_similarity * 0.5
          + duration_score   * 0.3
          + 0.2 if the channel looks official

Scoring Components:
    title_similarity: rapidfuzz ratio between the normalized track name and
        the normalized video title, scaled to [0, 1].
    duration_score: 1 - |source - candidate| / source. It goes negative when
        the durations differ by more than the source length, which pushes
        full albums and hour-long mixes below any sensible threshold. It is
        deliberately not clamped.
    channel bonus: flat +0.2 when the lowercased channel title contains
        "official" or "vevo", or ends with "- topic" (YouTube Music
        auto-generated artist channels).

The score is therefore nominally within [0, 1.2] but unbounded below.

Dependencies:
    - rapidfuzz: Fuzzy string matching
"""

import re

from rapidfuzz import fuzz

from playlist_migrator.spotify.models import SourceTrack
from playlist_migrator.youtube.models import Candidate, MatchDecision, ScoredCandidate


TITLE_WEIGHT = 0.5
DURATION_WEIGHT = 0.3
OFFICIAL_CHANNEL_BONUS = 0.2

OFFICIAL_CHANNEL_MARKERS = ("official", "vevo")
TOPIC_CHANNEL_SUFFIX = "- topic"


def _normalize_text(text: str) -> str:
    """
    Normalize text for comparison: lowercase, punctuation removed,
    whitespace collapsed.
    """
    text = re.sub(r"[^\w\s]", " ", text.casefold())
    return " ".join(text.split())


def title_similarity(source_title: str, candidate_title: str) -> float:
    """
    Similarity of two titles in [0, 1]; identical titles score 1.0.

    Examples:
        title_similarity("Hello", "hello!")   # 1.0
        title_similarity("Hello", "Goodbye")  # low
    """
    a = _normalize_text(source_title)
    b = _normalize_text(candidate_title)
    if not a and not b:
        return 1.0
    return fuzz.ratio(a, b) / 100.0


def duration_score(source_ms: int, candidate_ms: int) -> float:
    """
    1 - |source_ms - candidate_ms| / source_ms, unclamped.

    Returns 0.0 when the source duration is unknown (<= 0), so the
    duration term neither helps nor hurts.
    """
    if source_ms <= 0:
        return 0.0
    return 1.0 - abs(source_ms - candidate_ms) / source_ms


def is_official_channel(channel_title: str) -> bool:
    channel = channel_title.strip().lower()
    if any(marker in channel for marker in OFFICIAL_CHANNEL_MARKERS):
        return True
    return channel.endswith(TOPIC_CHANNEL_SUFFIX)


def score(track: SourceTrack, candidate: Candidate) -> float:
    """
    Calculate the match score of a candidate for a source track.

    Examples:
        Identical title, equal durations, channel "Artist - Topic":
            0.5 + 0.3 + 0.2 = 1.0
        Identical title, 200000ms vs 100000ms, ordinary channel:
            0.5 + 0.5 * 0.3 + 0 = 0.65
    """
    total = title_similarity(track.name, candidate.title) * TITLE_WEIGHT
    total += duration_score(track.duration_ms, candidate.duration_ms) * DURATION_WEIGHT
    if is_official_channel(candidate.channel_title):
        total += OFFICIAL_CHANNEL_BONUS
    return total


def select_best(
    track: SourceTrack,
    candidates: list[Candidate],
    threshold: float
) -> MatchDecision:
    """
    Score every candidate and pick the best one.

    The candidate with the strictly greatest score wins; on ties the one
    that came first in catalog order is kept. The winner is accepted only
    if its score is strictly above threshold.

    Args:
        track: Source track being matched.
        candidates: Candidates in the order the catalog returned them.
        threshold: match_threshold in [0, 1].

    Returns:
        MatchDecision; best is None when candidates is empty.
    """
    scored = tuple(ScoredCandidate(c, score(track, c)) for c in candidates)

    best: ScoredCandidate | None = None
    for entry in scored:
        if best is None or entry.score > best.score:
            best = entry

    accepted = best is not None and best.score > threshold
    return MatchDecision(best=best, accepted=accepted, threshold=threshold, scored=scored)
