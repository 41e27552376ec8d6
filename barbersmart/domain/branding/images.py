"""Branding image sizing and generation through the OpenAI images API"""

import base64
import logging
import time
from typing import Optional

import httpx

from ...config import OPENAI_API_KEY, OPENAI_IMAGE_MODEL
from ...services.storage_service import put_public_object

logger = logging.getLogger(__name__)

OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"

IMAGE_KINDS = ("logo-light", "logo-dark", "favicon")
GENERATION_TYPES = IMAGE_KINDS + ("all",)

# kind -> (size requested from the API, branding field that stores the URL)
IMAGE_TARGETS = {
    "logo-light": ("1792x1024", "logo_url"),
    "logo-dark": ("1792x1024", "logo_dark_url"),
    "favicon": ("1024x1024", "favicon_url"),
}


class ImageGenerationError(Exception):
    pass


def calculate_dimensions(
    width: int, height: int, max_width: int, max_height: Optional[int] = None
) -> tuple[int, int]:
    """Fit (width, height) inside the limits keeping the aspect ratio; never upscales"""
    if width > max_width:
        height = round(height * max_width / width)
        width = max_width
    if max_height and height > max_height:
        width = round(width * max_height / height)
        height = max_height
    return width, height


def build_prompt(kind: str, brand_name: str, primary_color: str) -> str:
    logo_base = (
        f'Create a modern, minimalist barbershop logo for "{brand_name}". The design should feature '
        f"a stylized barber pole or scissors icon combined with tech/smart elements. Use the accent "
        f"color {primary_color}. Professional SaaS aesthetic. "
    )
    if kind == "logo-dark":
        return logo_base + (
            f'White/light elements on a dark background. Include the text "{brand_name}" in a modern '
            f"sans-serif font. Horizontal layout."
        )
    if kind == "favicon":
        return (
            f'Create a square app icon for "{brand_name}" barbershop management software. A minimalist '
            f"scissors or barber pole symbol in {primary_color} on a dark background, recognizable at "
            f"32x32 pixels. No text. Slightly rounded corners."
        )
    return logo_base + (
        f'Dark elements on a clean white background. Include the text "{brand_name}" in a modern '
        f"sans-serif font. Horizontal layout."
    )


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=120)


async def generate_image(prompt: str, size: str) -> bytes:
    if not OPENAI_API_KEY:
        raise ImageGenerationError("OPENAI_API_KEY não está configurada")

    logger.info(f"🎨 Generating image ({size}): {prompt[:80]}...")
    async with _http_client() as client:
        response = await client.post(
            OPENAI_IMAGES_URL,
            headers={"Authorization": f"Bearer {OPENAI_API_KEY}"},
            json={"model": OPENAI_IMAGE_MODEL, "prompt": prompt, "n": 1, "size": size},
        )

    if response.status_code != 200:
        logger.error(f"❌ Image API error {response.status_code}: {response.text[:300]}")
        raise ImageGenerationError(f"Erro ao gerar imagem: {response.status_code}")

    return base64.b64decode(response.json()["data"][0]["b64_json"])


async def generate_branding_images(kind: str, brand_name: str, primary_color: str) -> dict:
    """Generate the requested images and upload them; returns {branding_field: url}"""
    kinds = IMAGE_KINDS if kind == "all" else (kind,)
    stamp = int(time.time() * 1000)
    results = {}
    for item in kinds:
        size, target_field = IMAGE_TARGETS[item]
        image = await generate_image(build_prompt(item, brand_name, primary_color), size)
        results[target_field] = put_public_object(f"branding/{item}-{stamp}.png", image, "image/png")
    return results
