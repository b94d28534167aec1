from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from models.aura import AspectRatio, AuraType, TransformationType


@dataclass(frozen=True)
class AuraPreset:
    description: str
    color: str
    icon: str


AURA_PRESETS: Mapping[AuraType, AuraPreset] = MappingProxyType({
    AuraType.DIVINE_GOLD: AuraPreset(
        description="Radiant golden energy, floating particles of light, majestic and god-like presence, immense pressure.",
        color="from-yellow-400 to-amber-600",
        icon="✨",
    ),
    AuraType.VOID_PURPLE: AuraPreset(
        description="Dark purple swirling energy, gravity distortion, mysterious shadows, menacing and powerful atmosphere.",
        color="from-purple-500 to-indigo-900",
        icon="🔮",
    ),
    AuraType.CYBER_CYAN: AuraPreset(
        description="Neon blue electric arcs, digital glitch effects, futuristic hud elements, high-tech energy flow.",
        color="from-cyan-400 to-blue-600",
        icon="⚡",
    ),
    AuraType.INFERNO_RED: AuraPreset(
        description="Raging fire aura, heat distortion, rising embers, intense anger and power.",
        color="from-red-500 to-orange-700",
        icon="🔥",
    ),
    AuraType.NATURE_GREEN: AuraPreset(
        description="Swirling leaves and wind, vibrant green life energy, serene yet overwhelming power.",
        color="from-green-400 to-emerald-700",
        icon="🍃",
    ),
    AuraType.CELESTIAL_WHITE: AuraPreset(
        description="Pure blinding white light, angel wings composed of energy, calm and absolute dominance.",
        color="from-gray-100 to-slate-300",
        icon="🕊️",
    ),
})

# NONE intentionally has no clause
TRANSFORMATION_CLAUSES: Mapping[TransformationType, str] = MappingProxyType({
    TransformationType.MALE_TO_FEMALE: (
        "Magical transformation from male to female. "
        "The subject morphs into a powerful female version. Gender swap."
    ),
    TransformationType.FEMALE_TO_MALE: (
        "Magical transformation from female to male. "
        "The subject morphs into a powerful male version. Gender swap."
    ),
})

ASPECT_RATIO_LABELS: Mapping[AspectRatio, str] = MappingProxyType({
    AspectRatio.PORTRAIT: "Story (9:16)",
    AspectRatio.LANDSCAPE: "Cinematic (16:9)",
})

SAMPLE_PROMPTS: tuple[str, ...] = (
    "Walking slowly towards the camera with overwhelming pressure.",
    "Sitting on a throne looking down with absolute confidence.",
    "Charging up power before a massive burst of energy.",
    "Standing still while the environment reacts to the aura.",
    "Meditating in a floating position.",
)


def _check_exhaustive() -> None:
    missing = set(AuraType) - set(AURA_PRESETS)
    if missing:
        raise RuntimeError(f"AURA_PRESETS missing entries for {sorted(m.name for m in missing)}")
    expected = set(TransformationType) - {TransformationType.NONE}
    if set(TRANSFORMATION_CLAUSES) != expected:
        raise RuntimeError("TRANSFORMATION_CLAUSES must cover exactly the non-NONE transformations")
    if set(ASPECT_RATIO_LABELS) != set(AspectRatio):
        raise RuntimeError("ASPECT_RATIO_LABELS must cover every AspectRatio")


_check_exhaustive()


def get_preset(aura_type: AuraType) -> AuraPreset:
    return AURA_PRESETS[aura_type]


def get_transformation_clause(transformation_type: TransformationType) -> str:
    return TRANSFORMATION_CLAUSES.get(transformation_type, "")


def presets_payload() -> dict:
    """Serializable view of every selectable option, for the frontend."""
    return {
        "auras": [
            {
                "name": aura.name,
                "label": aura.value,
                "description": preset.description,
                "color": preset.color,
                "icon": preset.icon,
            }
            for aura, preset in AURA_PRESETS.items()
        ],
        "aspect_ratios": [
            {"name": ratio.name, "value": ratio.value, "label": ASPECT_RATIO_LABELS[ratio]}
            for ratio in AspectRatio
        ],
        "transformations": [t.value for t in TransformationType],
        "sample_prompts": list(SAMPLE_PROMPTS),
    }
