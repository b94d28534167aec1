from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class AuraType(str, Enum):
    DIVINE_GOLD = "Divine Gold"
    VOID_PURPLE = "Void Purple"
    CYBER_CYAN = "Cyber Cyan"
    INFERNO_RED = "Inferno Red"
    NATURE_GREEN = "Nature Green"
    CELESTIAL_WHITE = "Celestial White"


class AspectRatio(str, Enum):
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"


class TransformationType(str, Enum):
    NONE = "NONE"
    MALE_TO_FEMALE = "MALE_TO_FEMALE"
    FEMALE_TO_MALE = "FEMALE_TO_MALE"


@dataclass(frozen=True)
class ImagePayload:
    """Source image bytes plus their validated MIME type"""
    data: bytes = field(repr=False)
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class GenerationRequest:
    """Validated, immutable input for one video generation"""
    prompt_text: str
    aura_type: AuraType
    aspect_ratio: AspectRatio
    transformation_type: TransformationType
    full_prompt: str
    image: Optional[ImagePayload] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class VideoArtifact:
    """Downloaded video stored as a session-scoped local file"""
    artifact_id: str
    local_address: str
    mime_type: str
    path: Path
    source_locator: str
    size_bytes: int
