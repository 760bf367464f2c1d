from __future__ import annotations

from typing import Any

import pytest

from dualchat.models.chat import ChatMode, ClassifierThresholds
from dualchat.services.mode_detection import ModeClassifier

LONG_CREATION_QUERY = "Please create a landing page " + "word " * 50


class FakeRemoteClassifier:
    def __init__(self, payload: dict[str, Any] | None = None, error: Exception | None = None):
        self._payload = payload or {}
        self._error = error
        self.calls: list[str] = []

    async def detect_mode(self, query: str) -> dict[str, Any]:
        self.calls.append(query)
        if self._error is not None:
            raise self._error
        return self._payload


def test_quick_marker_question_is_quick() -> None:
    detection = ModeClassifier().classify("What is the capital of France?")

    assert detection.mode == ChatMode.QUICK
    assert detection.confidence == 0.9


def test_research_request_is_task() -> None:
    detection = ModeClassifier().classify(
        "Research and compare three database engines across consistency, latency, "
        "and cost, then produce a report"
    )

    assert detection.mode == ChatMode.TASK
    assert detection.confidence == 0.85


def test_quick_marker_takes_priority_over_complex_marker() -> None:
    detection = ModeClassifier().classify(
        "What is the best way to research and compare caching strategies?"
    )

    assert detection.mode == ChatMode.QUICK
    assert detection.confidence == 0.9


def test_creation_verb_needs_a_long_query() -> None:
    classifier = ModeClassifier()

    assert classifier.classify(LONG_CREATION_QUERY).confidence == 0.85
    short = classifier.classify("Please create a landing page")
    assert short.mode == ChatMode.QUICK
    assert short.confidence == 0.6


def test_long_or_multi_sentence_query_is_task() -> None:
    classifier = ModeClassifier()

    long_query = classifier.classify("lorem " * 101)
    many_sentences = classifier.classify(
        "I like tea. You like coffee. We like water. They like juice."
    )

    assert (long_query.mode, long_query.confidence) == (ChatMode.TASK, 0.75)
    assert (many_sentences.mode, many_sentences.confidence) == (ChatMode.TASK, 0.75)


def test_several_question_marks_are_task() -> None:
    detection = ModeClassifier().classify("Where? When? How?")

    assert detection.mode == ChatMode.TASK
    assert detection.confidence == 0.7


def test_short_and_medium_queries_default_to_quick() -> None:
    classifier = ModeClassifier()

    assert classifier.classify("Hello there").confidence == 0.6
    medium = classifier.classify("word " * 25)
    assert medium.mode == ChatMode.QUICK
    assert medium.confidence == 0.5


@pytest.mark.parametrize(
    "query",
    ["", "   ", "?", "...", "\n\t", "???!!!", "a" * 5000, "word " * 1000, "émoji 🚀 ?"],
)
def test_classify_is_total(query: str) -> None:
    detection = ModeClassifier().classify(query)

    assert detection.mode in (ChatMode.QUICK, ChatMode.TASK)
    assert 0.0 <= detection.confidence <= 1.0
    assert detection.reason


def test_thresholds_are_configurable() -> None:
    classifier = ModeClassifier(ClassifierThresholds(short_query_words=5, default_confidence=0.4))

    detection = classifier.classify("one two three four five six")

    assert detection.mode == ChatMode.QUICK
    assert detection.confidence == 0.4


def test_thresholds_reject_out_of_range_confidence() -> None:
    with pytest.raises(ValueError, match="complex_confidence"):
        ClassifierThresholds(complex_confidence=1.5)


def test_analyze_reports_features() -> None:
    analysis = ModeClassifier().analyze("Compare A and B? Then C? Or D?")

    assert analysis.word_count == 8
    assert analysis.sentence_count == 3
    assert analysis.question_marks == 3
    assert analysis.has_complex_markers
    assert not analysis.has_quick_markers
    assert analysis.detection.mode == ChatMode.TASK


def test_classify_many_preserves_order() -> None:
    detections = ModeClassifier().classify_many(["Define entropy", "lorem " * 120])

    assert [item.mode for item in detections] == [ChatMode.QUICK, ChatMode.TASK]


def test_should_switch_early_in_conversation() -> None:
    classifier = ModeClassifier()
    query = "Research the history of container orchestration"

    assert classifier.should_switch(query, ChatMode.QUICK, history_length=0)
    assert classifier.should_switch(query, "quick", history_length=2)
    assert not classifier.should_switch(query, ChatMode.TASK, history_length=0)


@pytest.mark.parametrize("history_length", [3, 4, 50])
def test_should_switch_suppressed_in_established_conversation(history_length: int) -> None:
    classifier = ModeClassifier()

    assert not classifier.should_switch(
        "Research the history of container orchestration", ChatMode.QUICK, history_length
    )


def test_should_switch_requires_confidence() -> None:
    # Medium-length query resolves to quick with 0.5 confidence.
    assert not ModeClassifier().should_switch("word " * 25, ChatMode.TASK, history_length=0)


@pytest.mark.asyncio
async def test_classify_async_uses_remote_decision() -> None:
    remote = FakeRemoteClassifier({"mode": "task", "confidence": 0.95, "reason": "remote"})
    classifier = ModeClassifier(remote=remote)

    detection = await classifier.classify_async("hello")

    assert detection.mode == ChatMode.TASK
    assert detection.confidence == 0.95
    assert remote.calls == ["hello"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "remote",
    [
        FakeRemoteClassifier(error=RuntimeError("connection refused")),
        FakeRemoteClassifier({"mode": "banana"}),
        FakeRemoteClassifier({"confidence": 0.4}),
        FakeRemoteClassifier({"mode": "task", "confidence": 7}),
        FakeRemoteClassifier({"mode": "task", "confidence": "high"}),
    ],
)
async def test_classify_async_falls_back_to_heuristic(remote: FakeRemoteClassifier) -> None:
    classifier = ModeClassifier(remote=remote)
    query = "What is the capital of France?"

    detection = await classifier.classify_async(query)

    assert detection == classifier.classify(query)


@pytest.mark.asyncio
async def test_classify_async_without_remote_is_local() -> None:
    classifier = ModeClassifier()

    detection = await classifier.classify_async("Where? When? How?")

    assert detection.mode == ChatMode.TASK
