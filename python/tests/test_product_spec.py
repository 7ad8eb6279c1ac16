"""Tests for product spec loading and controller factories."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from career_chat.models import Granularity, Role
from matrixx_platform import (
    DEFAULT_SPEC_PATH,
    build_chat_settings,
    build_history,
    build_transcript_loader,
    create_chat_controller,
    create_practice_controller,
    load_product_spec,
)
from matrixx_platform.spec_models import ProductSpec
from tests.mock_data import ManualScheduler, generate_product_spec_dict


def _write_spec(tmp_path, payload) -> str:
    spec_file = tmp_path / "spec.json"
    spec_file.write_text(json.dumps(payload), encoding="utf-8")
    return str(spec_file)


def test_bundled_spec_loads_by_default(monkeypatch) -> None:
    """Without an explicit path or env var the bundled Matrixx spec is used."""
    monkeypatch.delenv("PRODUCT_SPEC_PATH", raising=False)
    spec, loaded_path = load_product_spec()

    assert spec.product_id == "matrixx"
    assert loaded_path == DEFAULT_SPEC_PATH.resolve()
    assert spec.practice.title == "Frontend Developer Interview - Round 1"
    assert [q.id for q in spec.practice.questions] == [1, 2, 3, 4, 5]
    assert all(q.time_limit_seconds == 120 for q in spec.practice.questions)
    assert [h.tool for h in spec.history] == ["resume", "interview", "cover-letter", "portfolio"]


def test_env_var_selects_spec(monkeypatch, tmp_path) -> None:
    """PRODUCT_SPEC_PATH is honored when no explicit path is given."""
    monkeypatch.setenv("PRODUCT_SPEC_PATH", _write_spec(tmp_path, generate_product_spec_dict()))
    spec, _ = load_product_spec()

    assert spec.product_id == "test-product"


def test_missing_spec_fails_fast(tmp_path) -> None:
    with pytest.raises(RuntimeError, match="not found"):
        load_product_spec(str(tmp_path / "absent.json"))


def test_invalid_json_fails_fast(tmp_path) -> None:
    spec_file = tmp_path / "broken.json"
    spec_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(RuntimeError, match="not valid JSON"):
        load_product_spec(str(spec_file))


def test_practice_requires_questions(tmp_path) -> None:
    """Spec validation fails fast when the practice session has no questions."""
    path = _write_spec(tmp_path, generate_product_spec_dict(questions=[]))

    with pytest.raises(RuntimeError, match="validation failed"):
        load_product_spec(path)


def test_duplicate_question_ids_rejected() -> None:
    payload = generate_product_spec_dict(
        questions=[{"id": 1, "text": "A?"}, {"id": 1, "text": "B?"}]
    )
    with pytest.raises(ValueError, match="unique ids"):
        ProductSpec.model_validate(payload)


def test_unknown_fields_rejected() -> None:
    payload = generate_product_spec_dict()
    payload["chat"]["theme"] = "dark"

    with pytest.raises(ValueError):
        ProductSpec.model_validate(payload)


def test_chat_settings_convert_milliseconds() -> None:
    spec, _ = load_product_spec(str(DEFAULT_SPEC_PATH))
    settings = build_chat_settings(spec)

    assert settings.reply_delay_seconds == pytest.approx(1.0)
    assert settings.granularity == Granularity.WORD
    assert settings.reveal_timing.word_interval == pytest.approx(0.05)
    assert settings.reveal_timing.initial_delay == pytest.approx(0.15)
    assert settings.max_file_size_bytes == 10 * 1024 * 1024


def test_history_timestamps_relative_to_now() -> None:
    spec, _ = load_product_spec(str(DEFAULT_SPEC_PATH))
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    history = build_history(spec, now=now)

    assert history[0].timestamp == now - timedelta(hours=2)
    assert history[-1].timestamp == now - timedelta(days=7)


def test_transcript_loader_returns_fresh_messages() -> None:
    spec, _ = load_product_spec(str(DEFAULT_SPEC_PATH))
    (item, *_) = build_history(spec)
    load = build_transcript_loader(spec)

    first = load(item)
    second = load(item)

    assert [m.role for m in first] == [Role.SYSTEM, Role.USER]
    assert first[0].id != second[0].id
    assert not any(m.revealing for m in first)


def test_create_controllers_from_bundled_spec() -> None:
    spec, _ = load_product_spec(str(DEFAULT_SPEC_PATH))
    scheduler = ManualScheduler()

    chat = create_chat_controller(spec, scheduler)
    practice = create_practice_controller(spec, scheduler)

    assert chat.current_tool == "general"
    assert [h.id for h in chat.history] == ["1", "2", "3", "4"]
    assert len(practice.questions) == 5

    practice.start()
    scheduler.advance(0.3)
    assert practice.snapshot().revealed_question_text == "H"


def test_unknown_tool_in_spec_fails_fast() -> None:
    payload = generate_product_spec_dict()
    payload["history"][0]["tool"] = "astrology"
    spec = ProductSpec.model_validate(payload)

    with pytest.raises(RuntimeError, match="unknown tool"):
        create_chat_controller(spec, ManualScheduler())
