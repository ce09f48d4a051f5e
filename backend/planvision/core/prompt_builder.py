"""
Prompt Builder

Text assembly for full-image isometric renders and single-room inpaints.
"""

from typing import List

from planvision.models.render import Annotation, EditPreset, StyleConfig


BASE_PROMPT = """Top-down, fully 3D isometric render of the entire floor plan. Create a clean, highly detailed miniature architectural maquette with accurate room proportions and layout, matching the reference exactly.

CRITICAL - ORIENTATION:
- The 3D render MUST maintain the EXACT SAME orientation as the input floor plan
- If the entrance is at the bottom of the floor plan, it must be at the bottom of the render
- Do NOT rotate or mirror the layout
- Match the aspect ratio and proportions exactly as shown

CRITICAL - DOORS AND OPENINGS:
- Identify ALL doors and doorways shown in the floor plan (gaps in walls with arc swings or rectangular openings)
- Every door between rooms MUST be rendered as an open doorway or visible door
- Do not fill interior doors in with walls

WALLS AND STRUCTURE:
- Preserve exact wall positions and thicknesses from the floor plan
- Do not add walls where there are none in the original
- Do not remove or block any openings shown in the plan

CRITICAL - NO TEXT OR LABELS:
- Do NOT include ANY text, labels, room names, or annotations in the output image
- Remove all text that appears in the input floor plan
- No room labels, no dimension text, no watermarks, no captions

FURNISHING:
Include appropriate furniture and decorative objects in each room (sofas, beds, tables, cabinets, lamps, plants, rugs, appliances) arranged realistically and in scale.

QUALITY:
High-resolution, photorealistic materials (wood floors, tiles, fabrics, glass). Soft global lighting, subtle shadows, crisp edges."""


STYLE_CONFIGS: List[StyleConfig] = [
    StyleConfig(
        value="modern",
        label="Modern Minimalist",
        description="Clean lines, neutral colors, minimal decor",
        prompt_suffix="Modern minimalist style. Sleek, contemporary furniture with clean lines. Neutral color palette (white, gray, black, beige). Minimal decorations. Low-profile sofas, simple dining tables, platform beds.",
    ),
    StyleConfig(
        value="scandinavian",
        label="Scandinavian Cozy",
        description="Warm tones, wood, textiles and hygge",
        prompt_suffix="Warm Scandinavian hygge style. Light wood furniture (oak, birch), cozy textiles (wool throws, sheepskin rugs), soft lighting, many plants, warm neutral tones. Inviting and cozy atmosphere.",
    ),
    StyleConfig(
        value="industrial",
        label="Industrial Loft",
        description="Raw materials, metal, exposed brick",
        prompt_suffix="Industrial loft style. Metal and reclaimed wood furniture, leather sofas, exposed brick textures, dark wood floors. Edison bulb lighting, metal shelving, raw materials.",
    ),
    StyleConfig(
        value="traditional",
        label="Traditional Elegant",
        description="Classic design, rich colors, ornate details",
        prompt_suffix="Traditional elegant style. Classic wooden furniture with ornate details, rich upholstery in burgundy, navy, and forest green. Antique-style pieces, elegant chandeliers, Persian rugs, crown molding.",
    ),
    StyleConfig(
        value="colorful",
        label="Colorful Playful",
        description="Vivid colors, patterned textiles, creative",
        prompt_suffix="Playful colorful style. Vibrant, bold colors throughout. Patterned textiles, eclectic furniture mix, creative artistic touches. Energetic and cheerful atmosphere.",
    ),
]


EDIT_PRESETS: List[EditPreset] = [
    EditPreset(label="Modern", prompt="modern minimalist furniture, clean lines, neutral colors"),
    EditPreset(label="Cozy", prompt="warm cozy atmosphere, soft textiles, warm lighting"),
    EditPreset(label="Luxury", prompt="luxury high-end furniture, elegant decor, premium materials"),
    EditPreset(label="Scandinavian", prompt="scandinavian style, light wood, plants, hygge"),
    EditPreset(label="Industrial", prompt="industrial style, exposed brick, metal accents"),
    EditPreset(label="Empty", prompt="empty room, no furniture, clean floor"),
]


INPAINT_PROMPT_SUFFIX = "High quality interior design, photorealistic, detailed textures, professional lighting."
INPAINT_NEGATIVE_PROMPT = "low quality, blurry, distorted, text, watermark, labels, annotations"


def get_style_config(style: str) -> StyleConfig:
    """Style configuration for a preset; unknown presets fall back to modern."""
    for config in STYLE_CONFIGS:
        if config.value == style:
            return config
    return STYLE_CONFIGS[0]


def build_prompt(annotations: List[Annotation], style: str) -> str:
    """Full-image render prompt: base instructions, style, annotation clauses."""
    style_config = get_style_config(style)
    prompt = BASE_PROMPT + f"\n\nStyle: {style_config.prompt_suffix}"

    labels = [a.text for a in annotations if a.type == "label" and a.text]
    if labels:
        prompt += f"\n\nRoom labels identified: {', '.join(labels)}. Furnish each room appropriately for its function."

    keep_areas = [a for a in annotations if a.type == "keep"]
    if keep_areas:
        prompt += f"\n\nAreas marked to KEEP AS-IS: Preserve the layout and features in {len(keep_areas)} marked region(s)."

    change_areas = [a for a in annotations if a.type == "change"]
    if change_areas:
        prompt += f"\n\nAreas marked for CHANGE: Apply modifications to {len(change_areas)} marked region(s)."
        notes = "; ".join(a.text for a in change_areas if a.text)
        if notes:
            prompt += f" Notes: {notes}"

    arrow_notes = [a.text for a in annotations if a.type == "arrow" and a.text]
    if arrow_notes:
        prompt += f"\n\nUser notes: {'; '.join(arrow_notes)}"

    return prompt


def build_refinement_prompt(annotations: List[Annotation], style: str, feedback: str) -> str:
    """Prompt for a small targeted change to a previous render."""
    style_config = get_style_config(style)
    marks = describe_annotations(annotations)
    marks_text = f"\nMARKED AREAS: {marks}\n" if marks else ""

    return f"""You are making a SMALL, TARGETED modification to an isometric apartment render.

CRITICAL - KEEP EVERYTHING THE SAME EXCEPT:
- Only change elements WHERE the user has drawn RED ANNOTATIONS
- Everything else must be identical to the previous image

DO NOT CHANGE:
- Walls, doors, windows
- Room layout and proportions
- Overall composition, colors, style
- Any area WITHOUT red annotations

USER'S REQUEST (shown as red marks on the image):
{feedback}
{marks_text}
STYLE: {style_config.prompt_suffix}

OUTPUT REQUIREMENTS:
1. Top-down isometric view, exactly like the input
2. The red annotations should NOT appear in output, they are instructions only
3. Match the exact style of the original render
4. Minimal change: 95%+ of the image stays identical"""


def describe_annotations(annotations: List[Annotation]) -> str:
    descriptions = []
    for a in annotations:
        if a.type == "label":
            if a.text:
                descriptions.append(f'Room label: "{a.text}"')
        elif a.type == "arrow":
            descriptions.append(f'Arrow pointing to: "{a.text}"' if a.text else "Arrow indicating an area")
        elif a.type == "keep":
            descriptions.append("Marked area to keep unchanged")
        elif a.type == "change":
            descriptions.append(f'Area to change: "{a.text}"' if a.text else "Area marked for changes")
        elif a.type == "path":
            descriptions.append("Freehand line marking an area")
    return ". ".join(descriptions)


def build_inpaint_prompt(prompt: str, room_label: str = "") -> str:
    """Room edit prompt sent to the inpainting model."""
    text = prompt.strip().rstrip(".")
    if room_label:
        text = f"{room_label}: {text}"
    return f"{text}. {INPAINT_PROMPT_SUFFIX}"
