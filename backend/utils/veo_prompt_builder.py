from models.aura import AuraType, TransformationType
from utils.aura_presets import get_preset, get_transformation_clause

CINEMATIC_PREAMBLE = "Cinematic video, high quality, 4k."

VISUAL_EFFECTS_TAIL = (
    "Visual effects: Glowing outline, anime-style energy waves, volumetric lighting, intense atmosphere. "
    "The aura should be the main focus, showing 'aura points' and coolness."
)


def create_aura_prompt(
    prompt_text: str,
    aura_type: AuraType,
    transformation_type: TransformationType = TransformationType.NONE,
) -> str:
    """
    Build the Veo prompt: preamble, optional transformation clause,
    aura description, the user's own text, then the effects tail.
    """
    parts = [CINEMATIC_PREAMBLE]

    transform_clause = get_transformation_clause(transformation_type)
    if transform_clause:
        parts.append(transform_clause)

    description = get_preset(aura_type).description
    parts.append(f"Subject exhibiting massive aura: {description}")

    user_text = (prompt_text or "").strip()
    if user_text:
        parts.append(user_text if user_text.endswith((".", "!", "?")) else f"{user_text}.")

    parts.append(VISUAL_EFFECTS_TAIL)
    return "\n".join(parts)
