"""Unit tests for fuzzy subsequence matching."""

import pytest

from launcher_search.config import FuzzyScoring
from launcher_search.search.fuzzy import EMPTY_MATCH, FuzzyMatcher, prepare_pattern


@pytest.fixture
def matcher():
    return FuzzyMatcher()


@pytest.mark.unit
class TestFuzzyMatcher:
    """Tests for FuzzyMatcher.match."""

    def test_subsequence_match_ranges(self, matcher):
        result = matcher.match("rcst", "Raycast")

        assert result is not None
        assert result.ranges == ((0, 1), (3, 4), (5, 7))
        assert result.score == 21.0

    def test_out_of_order_pattern_does_not_match(self, matcher):
        assert matcher.match("tscr", "Raycast") is None

    def test_missing_character_does_not_match(self, matcher):
        assert matcher.match("rcx", "Raycast") is None

    def test_pattern_longer_than_candidate(self, matcher):
        assert matcher.match("raycasts", "Raycast") is None

    def test_empty_pattern_matches_everything(self, matcher):
        assert matcher.match("", "Anything") == EMPTY_MATCH
        assert matcher.match("", "") == EMPTY_MATCH

    def test_case_insensitive(self, matcher):
        assert matcher.match("RAYCAST", "raycast") is not None

    def test_contiguous_beats_scattered(self, matcher):
        contiguous = matcher.match("clip", "Clipboard")
        scattered = matcher.match("clip", "cxlxixp")

        assert contiguous.score == 27.0
        assert scattered.score == 19.0
        assert contiguous.ranges == ((0, 4),)

    def test_camel_case_bonus(self, matcher):
        result = matcher.match("gh", "GitHub")

        assert result.ranges == ((0, 1), (3, 4))
        assert result.score == 7.0

    def test_word_boundary_beats_camel_hump(self, matcher):
        boundary = matcher.match("gh", "Go Home")
        camel = matcher.match("gh", "GitHub")

        assert boundary.score > camel.score

    def test_exact_case_prefix_outranks_other_candidates(self, matcher):
        exact_prefix = matcher.match("Term", "Terminal")
        camel_inner = matcher.match("Term", "iTerm")
        folded_prefix = matcher.match("term", "Terminal")
        exact_lower = matcher.match("term", "term")

        assert exact_prefix.score > camel_inner.score
        assert exact_lower.score > folded_prefix.score

    def test_leading_letter_penalty(self, matcher):
        near = matcher.match("z", "az")
        far = matcher.match("z", "aaaaaz")
        farther = matcher.match("z", "aaaaaaaaaz")

        assert near.score == 3.0
        # Penalty is capped
        assert far.score == 1.0
        assert farther.score == far.score

    def test_greedy_leftmost_ranges(self, matcher):
        result = matcher.match("aa", "abab aa")

        assert result.ranges == ((0, 1), (2, 3))

    def test_ranges_cover_every_pattern_character(self, matcher):
        cases = [("wm", "Window Management"), ("tsa", "Toggle System Appearance"), ("dev", "Developer")]
        for pattern, candidate in cases:
            result = matcher.match(pattern, candidate)
            assert result is not None
            assert sum(end - start for start, end in result.ranges) == len(pattern)
            matched = "".join(candidate[start:end] for start, end in result.ranges)
            assert matched.casefold() == pattern.casefold()

    def test_multi_char_case_fold(self, matcher):
        result = matcher.match("strasse", "Straße")

        assert result is not None
        assert result.ranges == ((0, 6),)

    def test_folding_pattern_character(self, matcher):
        assert matcher.match("ß", "Strasse") is not None
        assert matcher.match("ß", "Stra") is None

    def test_decomposed_candidate_is_normalized(self, matcher):
        result = matcher.match("café", "Cafe\u0301 Finder")

        assert result is not None
        assert result.ranges == ((0, 4),)

    def test_custom_scoring(self):
        scoring = FuzzyScoring(consecutive_bonus=10.0)
        result = FuzzyMatcher(scoring).match("ab", "ab")

        # a: base + boundary + exact, b: base + consecutive + exact
        assert result.score == (1 + 3 + 3) + (1 + 10 + 3)


@pytest.mark.unit
class TestPreparePattern:
    """Tests for prepare_pattern."""

    def test_folds_and_tracks_originals(self):
        pattern = prepare_pattern("Aß")

        assert pattern.folded == "ass"
        assert pattern.originals == ("A", "ß", "ß")

    def test_empty_pattern_is_falsy(self):
        assert not prepare_pattern("")
        assert prepare_pattern("a")

