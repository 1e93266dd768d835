"""
image_service.py
================
Scene art for locations, NPC portraits and clue close-ups.

Every prompt is assembled from the per-case visual anchors in case_data.py,
so the same character or place looks the same from one image to the next.
Rendered images are cached in memory by an md5 of the fully-assembled
prompt; identical prompts are rendered once per cache TTL.

Rendering is blocking (huggingface_hub's InferenceClient), so the service
runs it in a worker thread and stays awaitable alongside game turns.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from huggingface_hub import InferenceClient

from case_data import (
    BASE_IMAGE_STYLE,
    LOCATION_VISUAL_ANCHORS,
    NPC_VISUAL_ANCHORS,
    STYLE_MODIFIERS,
)
from config import IMAGE_CONFIG
from errors import ImageUnavailable

logger = logging.getLogger("shadows.image_service")


@dataclass(frozen=True)
class SceneImageRequest:
    case_id:          str
    scene:            str
    npc_id:           Optional[str] = None
    location_id:      Optional[str] = None
    style:            str = IMAGE_CONFIG.default_style
    force_regenerate: bool = False


@dataclass(frozen=True)
class GeneratedImage:
    data:      bytes
    mime_type: str
    prompt:    str
    cache_key: str


# ---------------------------------------------------------------------------
# Prompt assembly
# ---------------------------------------------------------------------------

def build_image_prompt(
    case_id: str,
    scene: str,
    npc_id: Optional[str] = None,
    location_id: Optional[str] = None,
    style: Optional[str] = None,
) -> str:
    """
    Assemble a text-to-image prompt.

    Order: location anchor, character anchor, scene, style modifier, then the
    base period style. Unknown ids and styles are skipped silently.
    """
    parts: List[str] = []

    if location_id:
        anchor = LOCATION_VISUAL_ANCHORS.get(case_id, {}).get(location_id)
        if anchor:
            parts.append(f"Setting: {anchor}")

    if npc_id:
        anchor = NPC_VISUAL_ANCHORS.get(case_id, {}).get(npc_id)
        if anchor:
            parts.append(f"Character: {anchor}")

    parts.append(f"Scene: {scene}")

    if style and style in STYLE_MODIFIERS:
        parts.append(f"Style: {STYLE_MODIFIERS[style]}")

    parts.extend(BASE_IMAGE_STYLE)
    return ". ".join(parts)


def cache_key_for(prompt: str) -> str:
    return hashlib.md5(prompt.encode()).hexdigest()[:12]


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class ImageBackend(Protocol):
    def render(self, prompt: str) -> Tuple[bytes, str]:
        """Return (image bytes, mime type). Raise on failure."""
        ...


class HuggingFaceImageBackend:
    """Renders through the Hugging Face Inference API. HF_TOKEN is optional."""

    def __init__(self, hf_token: Optional[str] = None) -> None:
        self.hf_token = hf_token or os.getenv("HF_TOKEN")
        self._client: Optional[InferenceClient] = None

    @property
    def client(self) -> InferenceClient:
        if self._client is None:
            self._client = InferenceClient(token=self.hf_token)
            logger.info("HuggingFace InferenceClient initialised")
        return self._client

    def render(self, prompt: str) -> Tuple[bytes, str]:
        image = self.client.text_to_image(
            prompt,
            model=IMAGE_CONFIG.model,
            width=IMAGE_CONFIG.width,
            height=IMAGE_CONFIG.height,
        )
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue(), "image/png"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ImageService:
    """
    Cached scene-image generation.

    Args:
        backend: Anything with ``render(prompt) -> (bytes, mime_type)``.
                 Defaults to HuggingFaceImageBackend.
    """

    def __init__(self, backend: Optional[ImageBackend] = None) -> None:
        self._backend = backend or HuggingFaceImageBackend()
        self._cache: Dict[str, Tuple[GeneratedImage, float]] = {}

    def _cached(self, cache_key: str) -> Optional[GeneratedImage]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        image, stored_at = entry
        if time.time() - stored_at > IMAGE_CONFIG.cache_ttl_seconds:
            del self._cache[cache_key]
            return None
        return image

    async def generate_scene_image(self, request: SceneImageRequest) -> GeneratedImage:
        prompt = build_image_prompt(
            request.case_id,
            request.scene,
            npc_id=request.npc_id,
            location_id=request.location_id,
            style=request.style,
        )
        cache_key = cache_key_for(prompt)

        if not request.force_regenerate:
            cached = self._cached(cache_key)
            if cached is not None:
                logger.debug("Image cache hit: %s", cache_key)
                return cached

        logger.info("Rendering image %s (%d prompt chars)", cache_key, len(prompt))
        try:
            data, mime_type = await asyncio.to_thread(self._backend.render, prompt)
        except Exception as exc:
            logger.error("Image render failed for %s: %s", cache_key, exc, exc_info=True)
            raise ImageUnavailable(f"Image generation failed: {exc}") from exc
        if not data:
            raise ImageUnavailable("Image backend returned no data.")

        image = GeneratedImage(data=data, mime_type=mime_type, prompt=prompt, cache_key=cache_key)
        self._cache[cache_key] = (image, time.time())
        return image

    async def location_image(self, case_id: str, location_id: str) -> GeneratedImage:
        return await self.generate_scene_image(SceneImageRequest(
            case_id=case_id,
            location_id=location_id,
            scene="Wide establishing shot, cinematic composition, no people visible",
            style="noir",
        ))

    async def npc_portrait(
        self,
        case_id: str,
        npc_id: str,
        mood: Optional[str] = None,
    ) -> GeneratedImage:
        expression = f", expression showing {mood}" if mood else ""
        return await self.generate_scene_image(SceneImageRequest(
            case_id=case_id,
            npc_id=npc_id,
            scene=f"Portrait shot, head and shoulders, looking at camera{expression}",
            style="dramatic",
        ))

    async def clue_image(
        self,
        case_id: str,
        location_id: str,
        clue_description: str,
    ) -> GeneratedImage:
        return await self.generate_scene_image(SceneImageRequest(
            case_id=case_id,
            location_id=location_id,
            scene=f"Close-up detail shot: {clue_description}. Focus on the object",
            style="mysterious",
        ))

    def cache_stats(self) -> Dict[str, object]:
        return {"count": len(self._cache), "keys": list(self._cache)}

    def clear_cache(self) -> None:
        self._cache.clear()
