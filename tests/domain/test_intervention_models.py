"""Tests for author intervention command contracts."""

import pytest
from pydantic import TypeAdapter, ValidationError

from loom.domain.models import (
    AdjustKarmaWeight,
    ClearBloomingChapter,
    ForceAttention,
    InterventionCommand,
    MarkAbandoned,
    ResolveThread,
)

adapter = TypeAdapter(InterventionCommand)


@pytest.mark.parametrize(
    "payload,command_type",
    [
        ({"kind": "force_attention", "thread_id": "t1"}, ForceAttention),
        ({"kind": "adjust_karma_weight", "thread_id": "t1", "delta": -15}, AdjustKarmaWeight),
        ({"kind": "mark_abandoned", "thread_id": "t1", "reason": "Cut"}, MarkAbandoned),
        ({"kind": "resolve", "thread_id": "t1"}, ResolveThread),
        ({"kind": "clear_blooming_chapter", "thread_id": "t1"}, ClearBloomingChapter),
    ],
)
def test_commands_parse_by_kind(payload, command_type):
    command = adapter.validate_python(payload)

    assert isinstance(command, command_type)
    assert command.thread_id == "t1"


def test_unknown_kind_rejected():
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "un_close", "thread_id": "t1"})


def test_mark_abandoned_requires_reason():
    with pytest.raises(ValidationError):
        MarkAbandoned(thread_id="t1", reason="")


def test_adjust_karma_requires_delta():
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "adjust_karma_weight", "thread_id": "t1"})
