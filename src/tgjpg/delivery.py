from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol

from tgjpg.image_search import ImageSearchError
from tgjpg.local_finder import AssetEntry, AssetMatch, MediaFormat
from tgjpg.messaging import Deliverer, DeliveryError, MediaKind, Payload
from tgjpg.source_fetcher import FetchError, SourceKind, classify

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10

AttemptOutcome = Literal["pending", "delivered", "failed"]
ExhaustedReason = Literal["no_candidates", "all_failed"]


class LocalFinderLike(Protocol):
    def find_matches(self, text: str) -> list[AssetMatch]: ...


class ImageSearchLike(Protocol):
    async def search(self, query: str, is_animated: bool) -> list[str]: ...


class SourceFetcherLike(Protocol):
    async def materialize(self, url: str) -> Payload: ...


@dataclass(frozen=True)
class LocalCandidate:
    entry: AssetEntry
    score: int


@dataclass(frozen=True)
class RemoteDirectCandidate:
    url: str


@dataclass(frozen=True)
class RemoteDownloadCandidate:
    url: str


Candidate = LocalCandidate | RemoteDirectCandidate | RemoteDownloadCandidate


@dataclass
class DeliveryAttempt:
    candidate: Candidate
    outcome: AttemptOutcome = "pending"
    reason: str | None = None


@dataclass(frozen=True)
class Delivered:
    candidate: Candidate
    payload: Payload
    media_kind: MediaKind
    attempts: tuple[DeliveryAttempt, ...] = field(default=())


@dataclass(frozen=True)
class Exhausted:
    reason: ExhaustedReason
    attempts: tuple[DeliveryAttempt, ...] = field(default=())


DeliveryResult = Delivered | Exhausted


def remote_candidate_for_url(url: str) -> Candidate:
    if classify(url) is SourceKind.REQUIRES_DOWNLOAD:
        return RemoteDownloadCandidate(url=url)
    return RemoteDirectCandidate(url=url)


def media_kind_for_format(media_format: MediaFormat) -> MediaKind:
    if media_format is MediaFormat.ANIMATED:
        return "animation"
    return "photo"


class DeliveryOrchestrator:
    def __init__(
        self,
        *,
        local_finder: LocalFinderLike,
        image_search: ImageSearchLike,
        source_fetcher: SourceFetcherLike,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._local_finder = local_finder
        self._image_search = image_search
        self._source_fetcher = source_fetcher
        self._max_attempts = max(1, max_attempts)

    async def resolve_and_deliver(
        self,
        query_text: str,
        is_animated: bool,
        local_mode_enabled: bool,
        deliver: Deliverer,
    ) -> DeliveryResult:
        """Deliver the first candidate the destination accepts.

        Local matches are tried first when local mode is enabled. Remote
        search only runs when local mode is off or produced no matches.
        CorpusReadError from the local walk propagates to the caller.
        """
        candidates: list[Candidate] = []
        if local_mode_enabled:
            candidates = self.local_candidates(query_text)
            logger.info(
                "local_candidates query=%r count=%d", query_text, len(candidates)
            )

        if not candidates:
            candidates = await self.remote_candidates(query_text, is_animated)

        if not candidates:
            return Exhausted(reason="no_candidates")

        declared_kind: MediaKind = "animation" if is_animated else "photo"
        return await self._attempt_all(
            candidates[: self._max_attempts], declared_kind, deliver
        )

    def local_candidates(self, query_text: str) -> list[Candidate]:
        return [
            LocalCandidate(entry=match.entry, score=match.score)
            for match in self._local_finder.find_matches(query_text)
        ]

    async def remote_candidates(
        self, query_text: str, is_animated: bool
    ) -> list[Candidate]:
        try:
            urls = await self._image_search.search(query_text, is_animated)
        except ImageSearchError as exc:
            logger.info(
                "remote_search_empty query=%r detail=%s", query_text, exc.user_message
            )
            return []
        return [remote_candidate_for_url(url) for url in urls]

    async def _attempt_all(
        self,
        candidates: list[Candidate],
        declared_kind: MediaKind,
        deliver: Deliverer,
    ) -> DeliveryResult:
        attempts: list[DeliveryAttempt] = []
        for index, candidate in enumerate(candidates):
            attempt = DeliveryAttempt(candidate=candidate)
            attempts.append(attempt)
            media_kind = self._media_kind_for(candidate, declared_kind)

            try:
                payload = await self._materialize(candidate)
                await deliver(payload, media_kind)
            except (FetchError, DeliveryError) as exc:
                attempt.outcome = "failed"
                attempt.reason = str(exc)
                logger.warning(
                    "delivery_attempt_failed index=%d candidate=%s reason=%s",
                    index,
                    candidate,
                    exc,
                )
                continue

            attempt.outcome = "delivered"
            logger.info(
                "delivery_succeeded index=%d payload=%s media_kind=%s",
                index,
                payload.describe(),
                media_kind,
            )
            return Delivered(
                candidate=candidate,
                payload=payload,
                media_kind=media_kind,
                attempts=tuple(attempts),
            )

        logger.error("delivery_exhausted attempt_count=%d", len(attempts))
        return Exhausted(reason="all_failed", attempts=tuple(attempts))

    async def _materialize(self, candidate: Candidate) -> Payload:
        if isinstance(candidate, LocalCandidate):
            return Payload.from_path(candidate.entry.path)
        return await self._source_fetcher.materialize(candidate.url)

    def _media_kind_for(
        self, candidate: Candidate, declared_kind: MediaKind
    ) -> MediaKind:
        if isinstance(candidate, LocalCandidate):
            return media_kind_for_format(candidate.entry.format)
        return declared_kind
