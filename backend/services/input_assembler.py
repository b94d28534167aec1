import logging
from enum import Enum
from typing import TypeVar

from models.aura import (
    AspectRatio,
    AuraType,
    GenerationRequest,
    ImagePayload,
    TransformationType,
)
from models.errors import InvalidImageError, ValidationError
from utils.env import settings
from utils.veo_prompt_builder import create_aura_prompt

logger = logging.getLogger("input_assembler")

ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}

DEFAULT_AURA = AuraType.DIVINE_GOLD
DEFAULT_ASPECT_RATIO = AspectRatio.PORTRAIT
DEFAULT_TRANSFORMATION = TransformationType.NONE

E = TypeVar("E", bound=Enum)


def infer_mime_type(image_bytes: bytes) -> str | None:
    """Image MIME sniffing from magic bytes; None when unrecognised."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"RIFF") and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return None


def _normalize_key(value: str) -> str:
    return value.strip().lower().replace("_", " ").replace("-", " ")


def parse_choice(enum_cls: type[E], value: "str | E | None", default: E) -> E:
    """Resolve an enum member from its value or name, case-insensitively."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, enum_cls):
        return value

    key = _normalize_key(str(value))
    for member in enum_cls:
        if key in (_normalize_key(member.value), _normalize_key(member.name)):
            return member
    raise ValidationError(f"Unknown {enum_cls.__name__}: {value!r}")


def validate_image(
    image_bytes: bytes | None,
    mime_type: str | None,
    max_bytes: int | None = None,
) -> ImagePayload | None:
    if not image_bytes:
        return None

    limit = settings.MAX_IMAGE_BYTES if max_bytes is None else max_bytes
    if len(image_bytes) > limit:
        raise InvalidImageError(
            f"File size too large. Please use an image under {limit // (1024 * 1024)}MB."
        )

    declared = (mime_type or "").split(";")[0].strip().lower()
    declared = _MIME_ALIASES.get(declared, declared)
    if not declared or declared == "application/octet-stream":
        declared = infer_mime_type(image_bytes) or declared

    if declared not in ALLOWED_IMAGE_MIME_TYPES:
        raise InvalidImageError("Please upload a valid image file (PNG, JPEG, WebP).")

    return ImagePayload(data=image_bytes, mime_type=declared)


def assemble(
    prompt: str | None = "",
    aura_type: "str | AuraType | None" = None,
    aspect_ratio: "str | AspectRatio | None" = None,
    transformation_type: "str | TransformationType | None" = None,
    image_bytes: bytes | None = None,
    image_mime_type: str | None = None,
) -> GenerationRequest:
    """
    Validate raw user inputs into a GenerationRequest.

    Raises ValidationError (InvalidImageError for image problems) before
    anything is sent anywhere.
    """
    aura = parse_choice(AuraType, aura_type, DEFAULT_AURA)
    ratio = parse_choice(AspectRatio, aspect_ratio, DEFAULT_ASPECT_RATIO)
    transform = parse_choice(TransformationType, transformation_type, DEFAULT_TRANSFORMATION)
    image = validate_image(image_bytes, image_mime_type)

    prompt_text = (prompt or "").strip()
    full_prompt = create_aura_prompt(prompt_text, aura, transform)

    image_info = f"{image.mime_type} ({image.size} bytes)" if image else "none"
    logger.info(
        f"Assembled request: aura={aura.name}, ratio={ratio.value}, transform={transform.value}, image={image_info}"
    )
    logger.debug(f"Composed prompt: {full_prompt}")

    return GenerationRequest(
        prompt_text=prompt_text,
        aura_type=aura,
        aspect_ratio=ratio,
        transformation_type=transform,
        full_prompt=full_prompt,
        image=image,
    )
