from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from tgjpg.normalize import normalize_text

logger = logging.getLogger(__name__)

MIN_FUZZY_STEM_CHARS = 3
SHORT_STEM_EXACT_SCORE = 2000
QUERY_CONTAINS_STEM_BASE_SCORE = 1000
STEM_CONTAINS_QUERY_BASE_SCORE = 900
WORD_OVERLAP_FULL_SCORE = 100


class MediaFormat(Enum):
    STATIC = "static"
    ANIMATED = "animated"


class CorpusReadError(Exception):
    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Failed to read asset corpus at {path}: {cause}")
        self.path = path


@dataclass(frozen=True)
class AssetEntry:
    path: Path
    normalized_stem: str
    format: MediaFormat


@dataclass(frozen=True)
class AssetMatch:
    entry: AssetEntry
    score: int


def media_format_for_path(path: Path) -> MediaFormat:
    if path.suffix.lower() == ".gif":
        return MediaFormat.ANIMATED
    return MediaFormat.STATIC


def score_stem(normalized_query: str, normalized_stem: str) -> int | None:
    """Score one stem against an already-normalized query.

    Returns None when the stem does not match at all. Stems shorter than
    MIN_FUZZY_STEM_CHARS only match the whole query exactly.
    """
    if len(normalized_stem) < MIN_FUZZY_STEM_CHARS:
        if normalized_query == normalized_stem:
            return SHORT_STEM_EXACT_SCORE
        return None

    if normalized_stem in normalized_query:
        return QUERY_CONTAINS_STEM_BASE_SCORE + len(normalized_stem)
    if normalized_query in normalized_stem:
        return STEM_CONTAINS_QUERY_BASE_SCORE + len(normalized_query)

    stem_words = normalized_stem.split()
    query_words = normalized_query.split()
    matched = sum(
        1
        for stem_word in stem_words
        if any(
            stem_word in query_word or query_word in stem_word
            for query_word in query_words
        )
    )
    if matched == 0:
        return None
    return (matched * WORD_OVERLAP_FULL_SCORE) // max(1, len(stem_words))


class LocalImageFinder:
    def __init__(self, assets_dir: Path | str) -> None:
        self._assets_dir = Path(assets_dir)

    @property
    def assets_dir(self) -> Path:
        return self._assets_dir

    def find_matches(self, text: str) -> list[AssetMatch]:
        if not self._assets_dir.is_dir():
            logger.error("assets_dir_missing path=%s", self._assets_dir)
            return []

        try:
            entries = self.iter_entries()
        except CorpusReadError as exc:
            if exc.path != self._assets_dir:
                raise
            logger.error("assets_dir_unreadable path=%s error=%s", exc.path, exc)
            return []

        normalized_query = normalize_text(text)
        matches: list[AssetMatch] = []
        for entry in entries:
            score = score_stem(normalized_query, entry.normalized_stem)
            if score is not None:
                matches.append(AssetMatch(entry=entry, score=score))

        # list.sort is stable, so equal scores keep walk order.
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    def find_best(self, text: str) -> AssetEntry | None:
        matches = self.find_matches(text)
        if not matches:
            return None

        best = matches[0]
        logger.info(
            "local_match_found score=%d path=%s", best.score, best.entry.path
        )
        return best.entry

    def iter_entries(self) -> list[AssetEntry]:
        entries: list[AssetEntry] = []
        self._walk(self._assets_dir, entries)
        return entries

    def _walk(self, directory: Path, entries: list[AssetEntry]) -> None:
        try:
            children = sorted(directory.iterdir())
        except OSError as exc:
            raise CorpusReadError(directory, exc) from exc

        for child in children:
            if child.is_dir():
                self._walk(child, entries)
                continue
            if not child.is_file():
                continue

            normalized_stem = normalize_text(child.stem)
            if not normalized_stem:
                continue

            entries.append(
                AssetEntry(
                    path=child,
                    normalized_stem=normalized_stem,
                    format=media_format_for_path(child),
                )
            )
