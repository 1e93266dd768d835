"""Tests for image prompts and the image cache. Uses a fake render backend."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio
from dataclasses import replace

import pytest

import image_service
from config import IMAGE_CONFIG
from errors import ImageUnavailable
from image_service import (
    ImageService,
    SceneImageRequest,
    build_image_prompt,
    cache_key_for,
)


class FakeBackend:
    def __init__(self, data: bytes = b"\x89PNG fake", fail: bool = False) -> None:
        self.data = data
        self.fail = fail
        self.prompts = []

    def render(self, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise RuntimeError("model is loading")
        return self.data, "image/png"


def _request(**overrides) -> SceneImageRequest:
    fields = dict(case_id="missing-heiress", scene="A man at the window", npc_id="harold")
    fields.update(overrides)
    return SceneImageRequest(**fields)


# ---------------------------------------------------------------------------
# Prompt assembly
# ---------------------------------------------------------------------------

def test_prompt_includes_anchors_in_order():
    prompt = build_image_prompt(
        "missing-heiress", "Rain on the glass", npc_id="marcus", location_id="blue-moon", style="noir"
    )
    parts = prompt.split(". ")

    assert parts[0].startswith("Setting: basement jazz club")
    assert parts[1].startswith("Character: man in his early 30s")
    assert parts[2] == "Scene: Rain on the glass"
    assert parts[3].startswith("Style: film noir")
    assert parts[-2:] == ["1940s period detail", "35mm film grain"]


def test_prompt_skips_unknown_ids_and_styles():
    prompt = build_image_prompt(
        "gin-joint-blues", "A bar", npc_id="lou", location_id="speakeasy", style="pastel"
    )
    assert prompt == "Scene: A bar. 1940s period detail. 35mm film grain"


def test_cache_key_is_stable():
    assert cache_key_for("same prompt") == cache_key_for("same prompt")
    assert cache_key_for("same prompt") != cache_key_for("other prompt")
    assert len(cache_key_for("x")) == 12


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def test_identical_requests_render_once():
    backend = FakeBackend()
    service = ImageService(backend)

    first = asyncio.run(service.generate_scene_image(_request()))
    second = asyncio.run(service.generate_scene_image(_request()))

    assert first is second
    assert len(backend.prompts) == 1
    assert first.data == b"\x89PNG fake"
    assert first.mime_type == "image/png"
    assert service.cache_stats() == {"count": 1, "keys": [first.cache_key]}


def test_force_regenerate_bypasses_cache():
    backend = FakeBackend()
    service = ImageService(backend)

    asyncio.run(service.generate_scene_image(_request()))
    asyncio.run(service.generate_scene_image(_request(force_regenerate=True)))

    assert len(backend.prompts) == 2
    assert service.cache_stats()["count"] == 1


def test_expired_entries_are_rendered_again(monkeypatch):
    backend = FakeBackend()
    service = ImageService(backend)
    now = [1000.0]
    monkeypatch.setattr(image_service.time, "time", lambda: now[0])

    asyncio.run(service.generate_scene_image(_request()))
    now[0] += IMAGE_CONFIG.cache_ttl_seconds + 1
    asyncio.run(service.generate_scene_image(_request()))

    assert len(backend.prompts) == 2


def test_clear_cache():
    backend = FakeBackend()
    service = ImageService(backend)

    asyncio.run(service.generate_scene_image(_request()))
    service.clear_cache()
    asyncio.run(service.generate_scene_image(_request()))

    assert len(backend.prompts) == 2


def test_backend_failure_raises_image_unavailable():
    service = ImageService(FakeBackend(fail=True))
    with pytest.raises(ImageUnavailable):
        asyncio.run(service.generate_scene_image(_request()))
    assert service.cache_stats()["count"] == 0


def test_empty_image_raises_image_unavailable():
    service = ImageService(FakeBackend(data=b""))
    with pytest.raises(ImageUnavailable):
        asyncio.run(service.generate_scene_image(_request()))


def test_location_portrait_and_clue_helpers():
    backend = FakeBackend()
    service = ImageService(backend)

    location = asyncio.run(service.location_image("missing-heiress", "docks"))
    portrait = asyncio.run(service.npc_portrait("missing-heiress", "frank", mood="nervous"))
    clue = asyncio.run(
        service.clue_image("missing-heiress", "office", "a ledger with torn-out pages")
    )

    assert "San Pedro warehouse pier" in location.prompt
    assert "Wide establishing shot" in location.prompt
    assert "Style: film noir" in location.prompt

    assert "rumpled tan trench coat" in portrait.prompt
    assert "expression showing nervous" in portrait.prompt
    assert "chiaroscuro" in portrait.prompt

    assert "Close-up detail shot: a ledger with torn-out pages" in clue.prompt
    assert "brass desk lamp" in clue.prompt
    assert len(backend.prompts) == 3


def test_request_defaults_to_configured_style():
    request = SceneImageRequest(case_id="missing-heiress", scene="x")
    assert request.style == IMAGE_CONFIG.default_style
    assert replace(request, style="tense").style == "tense"
