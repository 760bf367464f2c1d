"""Heuristic quick/task mode classification.

Rules are evaluated in priority order and the first match wins:

1. quick marker and fewer than ``quick_marker_max_words`` words -> quick
2. complex-analysis marker, or creation verb with more than
   ``creation_verb_min_words`` words -> task
3. more than ``long_query_words`` words or ``max_sentences`` sentences -> task
4. more than ``max_question_marks`` question marks -> task
5. fewer than ``short_query_words`` words -> quick
6. otherwise -> quick

The word-count thresholds and confidences were tuned by hand and have no
documented derivation; they live in ``ClassifierThresholds`` so deployments can
recalibrate them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from typing import Any

from dualchat.clients.orchestrator import RemoteModeClassifier
from dualchat.models.chat import ChatMode, ClassifierThresholds, ModeDetection

logger = logging.getLogger(__name__)

QUICK_MARKERS = (
    "quick",
    "simple",
    "just",
    "what is",
    "who is",
    "when was",
    "define",
    "explain briefly",
    "summarize",
    "in short",
)

COMPLEX_MARKERS = (
    "research",
    "analyze",
    "compare",
    "investigate",
    "evaluate",
    "comprehensive",
    "detailed",
    "multi-step",
    "deep dive",
    "thorough",
    "examine",
    "assess",
    "review extensively",
)

CREATION_VERBS = (
    "create",
    "build",
    "develop",
    "design",
    "implement",
    "generate",
    "write a report",
    "produce",
    "compile",
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class QueryAnalysis:
    word_count: int
    sentence_count: int
    question_marks: int
    has_quick_markers: bool
    has_complex_markers: bool
    has_creation_verbs: bool
    detection: ModeDetection

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["detection"] = self.detection.to_dict()
        return payload


class ModeClassifier:
    def __init__(
        self,
        thresholds: ClassifierThresholds | None = None,
        remote: RemoteModeClassifier | None = None,
    ) -> None:
        self._thresholds = thresholds or ClassifierThresholds()
        self._remote = remote

    @property
    def thresholds(self) -> ClassifierThresholds:
        return self._thresholds

    def classify(self, query: str) -> ModeDetection:
        return self.analyze(query).detection

    def classify_many(self, queries: Iterable[str]) -> list[ModeDetection]:
        return [self.classify(query) for query in queries]

    def analyze(self, query: str) -> QueryAnalysis:
        """Compute the features behind a classification and the resulting detection."""
        text = query or ""
        lowered = text.lower()
        word_count = len(text.split())
        sentence_count = len([part for part in _SENTENCE_SPLIT.split(text) if part.strip()])
        question_marks = text.count("?")
        has_quick = _contains_any(lowered, QUICK_MARKERS)
        has_complex = _contains_any(lowered, COMPLEX_MARKERS)
        has_creation = _contains_any(lowered, CREATION_VERBS)

        t = self._thresholds
        if has_quick and word_count < t.quick_marker_max_words:
            detection = ModeDetection(
                ChatMode.QUICK, t.quick_marker_confidence, "Quick question keywords detected"
            )
        elif has_complex or (has_creation and word_count > t.creation_verb_min_words):
            detection = ModeDetection(
                ChatMode.TASK,
                t.complex_confidence,
                "Complex analysis or task creation requested",
            )
        elif word_count > t.long_query_words or sentence_count > t.max_sentences:
            detection = ModeDetection(
                ChatMode.TASK, t.long_query_confidence, "Long, complex query detected"
            )
        elif question_marks > t.max_question_marks:
            detection = ModeDetection(
                ChatMode.TASK,
                t.multi_question_confidence,
                "Multiple questions require orchestration",
            )
        elif word_count < t.short_query_words:
            detection = ModeDetection(
                ChatMode.QUICK,
                t.short_query_confidence,
                "Short query suitable for quick response",
            )
        else:
            detection = ModeDetection(
                ChatMode.QUICK, t.default_confidence, "Standard query, quick mode recommended"
            )

        return QueryAnalysis(
            word_count=word_count,
            sentence_count=sentence_count,
            question_marks=question_marks,
            has_quick_markers=has_quick,
            has_complex_markers=has_complex,
            has_creation_verbs=has_creation,
            detection=detection,
        )

    async def classify_async(self, query: str) -> ModeDetection:
        """Prefer the remote classifier, falling back to the local heuristic.

        Never raises: transport errors and malformed responses both resolve to
        ``classify(query)``.
        """
        if self._remote is None:
            return self.classify(query)
        try:
            payload = await self._remote.detect_mode(query)
            return _parse_remote_detection(payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Remote mode detection failed, using heuristic: %s", exc)
            return self.classify(query)

    def should_switch(self, query: str, current_mode: ChatMode | str, history_length: int) -> bool:
        """Whether to suggest switching modes for this query.

        Suggestions are only offered early in a conversation so an established
        flow is not interrupted.
        """
        if history_length >= self._thresholds.switch_max_history:
            return False
        detection = self.classify(query)
        return (
            detection.mode != ChatMode(current_mode)
            and detection.confidence > self._thresholds.switch_min_confidence
        )


def _contains_any(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def _parse_remote_detection(payload: Mapping[str, Any]) -> ModeDetection:
    mode = ChatMode(str(payload["mode"]).lower())
    raw_confidence = payload.get("confidence")
    confidence = 1.0 if raw_confidence is None else float(raw_confidence)
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"remote confidence out of range: {confidence}")
    reason = payload.get("reason") or "Remote classifier decision"
    return ModeDetection(mode=mode, confidence=confidence, reason=str(reason))
