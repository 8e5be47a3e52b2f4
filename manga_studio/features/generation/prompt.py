# manga_studio/features/generation/prompt.py
from typing import List
from urllib.parse import quote_plus

# Output order of the variations follows this tuple.
STYLE_VARIATIONS = (
    "in a classic shonen manga style",
    "in a modern manga style with detailed backgrounds",
    "in a dramatic manga style with strong contrast",
)

PLACEHOLDER_COLORS = ("6366f1", "8b5cf6", "a855f7")
PLACEHOLDER_SIZE = "400x600"


def build_base_prompt(*, page_type: str, description: str) -> str:
    return (
        f"Create a manga {page_type} page: {description}. "
        "Style: black and white manga art, detailed linework, dynamic composition, "
        "professional manga illustration."
    )


def build_variation_prompts(*, page_type: str, description: str) -> List[str]:
    base = build_base_prompt(page_type=page_type, description=description)
    return [f"{base} {style}" for style in STYLE_VARIATIONS]


def placeholder_image_ref(*, page_type: str, style_index: int, base_url: str) -> str:
    """
    Network-free stand-in image, e.g.
    https://via.placeholder.com/400x600/6366f1/ffffff?text=Action+Page+1
    """
    color = PLACEHOLDER_COLORS[style_index % len(PLACEHOLDER_COLORS)]
    text = quote_plus(f"{page_type.title()} Page {style_index + 1}")
    return f"{base_url.rstrip('/')}/{PLACEHOLDER_SIZE}/{color}/ffffff?text={text}"
