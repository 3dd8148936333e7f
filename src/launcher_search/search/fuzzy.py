"""Fuzzy subsequence matching for launcher search.

Pattern characters must appear in the candidate in order, case-insensitively,
but not necessarily contiguously. The score is accumulated while walking the
match:

- +base per matched character
- +consecutive bonus when a matched character directly follows another one
- +word boundary bonus for the first character of a word
- +CamelCase bonus for an uppercase letter preceded by a lowercase letter
- +exact case bonus when the candidate character equals the pattern character
- -leading letter penalty per unmatched character before the first match,
  capped

All constants come from :class:`~launcher_search.config.FuzzyScoring`.
"""

from __future__ import annotations

from dataclasses import dataclass

from launcher_search.config import FuzzyScoring
from launcher_search.search.normalizer import canonical


@dataclass(frozen=True, slots=True)
class FuzzyMatch:
    """Successful match: score plus half-open matched character ranges."""

    score: float
    ranges: tuple[tuple[int, int], ...] = ()


EMPTY_MATCH = FuzzyMatch(score=0.0)


@dataclass(frozen=True, slots=True)
class PreparedPattern:
    """Pattern folded once per query and reused for every candidate.

    ``originals[i]`` is the pattern character that produced ``folded[i]``
    (a character such as ``ß`` folds to several characters).
    """

    text: str
    folded: str
    originals: tuple[str, ...]

    def __bool__(self) -> bool:
        return bool(self.folded)


def prepare_pattern(pattern: str) -> PreparedPattern:
    """Fold ``pattern`` for repeated matching."""
    text = canonical(pattern)
    folded_parts: list[str] = []
    originals: list[str] = []
    for ch in text:
        folded = ch.casefold()
        folded_parts.append(folded)
        originals.extend(ch for _ in folded)
    return PreparedPattern(text=text, folded="".join(folded_parts), originals=tuple(originals))


class FuzzyMatcher:
    """Stateless scorer for pattern/candidate pairs."""

    def __init__(self, scoring: FuzzyScoring | None = None) -> None:
        self.scoring = scoring or FuzzyScoring()

    def match(self, pattern: str, candidate: str) -> FuzzyMatch | None:
        """Match ``pattern`` against ``candidate``.

        Args:
            pattern: Query text as typed.
            candidate: Original (not case-folded) candidate text.

        Returns:
            A :class:`FuzzyMatch`, or ``None`` when some pattern character
            cannot be found in the remaining candidate text. An empty
            pattern always matches with score 0 and no ranges.

        Examples:
            >>> FuzzyMatcher().match("rcst", "Raycast").ranges
            ((0, 1), (3, 4), (5, 7))
            >>> FuzzyMatcher().match("tscr", "Raycast") is None
            True
        """
        return self.match_prepared(prepare_pattern(pattern), candidate)

    def match_prepared(self, pattern: PreparedPattern, candidate: str) -> FuzzyMatch | None:
        """Match an already prepared pattern; see :meth:`match`."""
        folded = pattern.folded
        if not folded:
            return EMPTY_MATCH
        if not candidate.isascii():
            candidate = canonical(candidate)

        cfg = self.scoring
        originals = pattern.originals
        pattern_len = len(folded)
        pi = 0
        score = 0.0
        last_matched = -2
        ranges: list[list[int]] = []

        for ci, ch in enumerate(candidate):
            if pi >= pattern_len:
                break
            ch_folded = ch.casefold()
            width = len(ch_folded)
            if width == 1:
                if ch_folded != folded[pi]:
                    continue
            elif not folded.startswith(ch_folded, pi):
                continue

            if not ranges:
                score -= min(ci * cfg.leading_letter_penalty, cfg.max_leading_letter_penalty)

            char_score = cfg.base_match_score
            consecutive = last_matched == ci - 1
            if consecutive:
                char_score += cfg.consecutive_bonus
            prev = candidate[ci - 1] if ci else ""
            if ch.isalnum() and (not prev or not prev.isalnum()):
                char_score += cfg.word_boundary_bonus
            elif ch.isupper() and prev.islower():
                char_score += cfg.camel_case_bonus
            if originals[pi] == ch:
                char_score += cfg.exact_case_bonus
            score += char_score

            if consecutive:
                ranges[-1][1] = ci + 1
            else:
                ranges.append([ci, ci + 1])
            last_matched = ci
            pi += width

        if pi < pattern_len:
            return None
        return FuzzyMatch(score=score, ranges=tuple((start, end) for start, end in ranges))

