"""Tests for the match scorer"""

import pytest

from playlist_migrator.youtube.scorer import (
    duration_score,
    is_official_channel,
    score,
    select_best,
    title_similarity,
)

from tests.conftest import make_candidate, make_track


class TestTitleSimilarity:
    """Tests for title_similarity()"""

    def test_identical_titles(self):
        """Should score identical titles as 1.0"""
        assert title_similarity("Bohemian Rhapsody", "Bohemian Rhapsody") == 1.0

    def test_case_and_punctuation_ignored(self):
        """Should ignore case and punctuation"""
        assert title_similarity("Hello", "hello!") == 1.0

    def test_different_titles(self):
        """Should score unrelated titles low"""
        assert title_similarity("Bohemian Rhapsody", "Yellow Submarine") < 0.5


class TestDurationScore:
    """Tests for duration_score()"""

    def test_equal_durations(self):
        assert duration_score(200000, 200000) == 1.0

    def test_half_duration(self):
        assert duration_score(200000, 100000) == pytest.approx(0.5)

    def test_not_clamped(self):
        """Should go negative when the difference exceeds the source length"""
        assert duration_score(100000, 350000) == pytest.approx(-1.5)

    def test_unknown_source_duration(self):
        """Should ignore the duration when the source length is unknown"""
        assert duration_score(0, 200000) == 0.0


class TestOfficialChannel:
    """Tests for is_official_channel()"""

    @pytest.mark.parametrize("channel", [
        "Queen Official",
        "QueenVEVO",
        "Queen - Topic",
        "  queen - topic  ",
    ])
    def test_official(self, channel):
        assert is_official_channel(channel)

    @pytest.mark.parametrize("channel", ["Queen Fan Club", "Topical Covers", ""])
    def test_not_official(self, channel):
        assert not is_official_channel(channel)


class TestScore:
    """Tests for score()"""

    def test_perfect_match(self):
        """Identical title, equal duration and a topic channel score 1.0"""
        track = make_track("t1", "Song", duration_ms=200000)
        candidate = make_candidate("v1", "Song", duration_ms=200000, channel="Artist - Topic")

        assert score(track, candidate) == pytest.approx(1.0)

    def test_half_duration_ordinary_channel(self):
        """Identical title, half duration and an ordinary channel score 0.65"""
        track = make_track("t1", "Song", duration_ms=200000)
        candidate = make_candidate("v1", "Song", duration_ms=100000, channel="Someone")

        assert score(track, candidate) == pytest.approx(0.65)

    def test_long_video_scores_below_zero(self):
        """Should let an hour-long video fall below zero"""
        track = make_track("t1", "Song", duration_ms=200000)
        candidate = make_candidate("v1", "Song", duration_ms=3600000, channel="Someone")

        assert score(track, candidate) < 0


class TestSelectBest:
    """Tests for select_best()"""

    def test_no_candidates(self):
        """Should return no best candidate for an empty list"""
        decision = select_best(make_track("t1", "Song"), [], 0.5)

        assert decision.best is None
        assert not decision.accepted
        assert decision.match is None

    def test_highest_score_wins(self):
        """Should pick the candidate with the highest score"""
        track = make_track("t1", "Song")
        weak = make_candidate("v1", "Other Thing", channel="Someone")
        strong = make_candidate("v2", "Song")

        decision = select_best(track, [weak, strong], 0.5)

        assert decision.accepted
        assert decision.match == strong
        assert [s.candidate for s in decision.scored] == [weak, strong]

    def test_tie_keeps_first(self):
        """Should keep the earlier candidate when scores are equal"""
        track = make_track("t1", "Song")
        first = make_candidate("v1", "Song")
        second = make_candidate("v2", "Song")

        assert select_best(track, [first, second], 0.5).match == first

    def test_score_equal_to_threshold_rejected(self):
        """Should require a score strictly above the threshold"""
        track = make_track("t1", "Song")
        candidate = make_candidate("v1", "Song", channel="Someone")
        threshold = score(track, candidate)

        decision = select_best(track, [candidate], threshold)

        assert not decision.accepted
        assert decision.match is None
        assert decision.best.candidate == candidate

    @pytest.mark.parametrize("threshold, accepted", [
        (0.0, True),
        (0.5, True),
        (0.65, False),
        (0.8, False),
    ])
    def test_threshold_decides_acceptance(self, threshold, accepted):
        """v1 scores 0.65: accepted below that, rejected at or above it"""
        track = make_track("t1", "Song", duration_ms=200000)
        first = make_candidate("v1", "Song", duration_ms=100000, channel="Someone")
        candidates = [
            first,
            make_candidate("v2", "Something Else", duration_ms=240000, channel="Someone"),
        ]

        decision = select_best(track, candidates, threshold)

        assert decision.best.candidate == first
        assert decision.accepted is accepted
        assert decision.match == (first if accepted else None)
