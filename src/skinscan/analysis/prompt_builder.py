"""Instruction text sent to the inference service together with the photo links."""

from skinscan.analysis.models import ATTRIBUTES

PROMPT_VERSION = "2024-11-skin-v1"

_ROLE = (
    "You are a highly advanced skin analysis expert. Your task is to assess the quality of a subject's skin "
    "based on the input images. Evaluate the following attributes, providing a score out of 100 for each, "
    "where higher scores indicate better skin quality. Include a brief one-sentence explanation of your "
    "assessment. Follow these detailed guidelines:"
)

# score bands are rendered as bar charts by consumers, keep them stable
_GUIDES: dict[str, tuple[str, tuple[str, str, str, str, str], str]] = {
    "Redness": (
        "Evaluate the intensity and extent of redness, where less redness corresponds to a higher score.",
        (
            "No visible redness; skin appears even-toned.",
            "Mild redness; minor discoloration in isolated areas.",
            "Moderate redness; noticeable in specific areas (e.g., cheeks, nose).",
            "Significant redness; visible inflammation or widespread discoloration.",
            "Severe redness; substantial inflammation or irritation.",
        ),
        "Mild redness concentrated around the nose and cheeks, scoring 70.",
    ),
    "Hydration": (
        "Assess the skin's moisture level, where well-hydrated skin corresponds to a higher score.",
        (
            "Fully hydrated; skin is plump, smooth, and radiant.",
            "Adequately hydrated; minor dryness in isolated areas.",
            "Mildly dry; visible roughness or lack of elasticity.",
            "Moderately dry; noticeable dryness and flakiness.",
            "Severely dry; skin appears cracked or visibly dehydrated.",
        ),
        "Skin shows slight dryness on the forehead and cheeks, indicating a hydration score of 60.",
    ),
    "Pores": (
        "Evaluate the visibility and size of pores, where smaller and less visible pores correspond to a "
        "higher score.",
        (
            "Nearly invisible pores; smooth texture.",
            "Small, minimally visible pores in specific areas.",
            "Moderately visible pores, noticeable in the T-zone.",
            "Large, prominent pores in multiple areas.",
            "Severe pore visibility; skin texture is coarse.",
        ),
        "Moderately visible pores on the nose and cheeks, scoring 55.",
    ),
    "Acne": (
        "Assess the severity and extent of acne, where clearer skin corresponds to a higher score.",
        (
            "Clear skin; no visible acne.",
            "Minimal acne; occasional blackheads or whiteheads.",
            "Mild acne; some blackheads, whiteheads, or small inflamed spots.",
            "Moderate acne; a mix of blackheads, whiteheads, or inflamed spots.",
            "Severe acne; significant inflammation, pustules, or cysts across multiple areas.",
        ),
        "A few inflamed spots on the chin and forehead, scoring 65 for acne.",
    ),
    "Overall Skin Quality": (
        "Provide an overall assessment of skin health by factoring in all the above attributes. Higher scores "
        "indicate better skin quality.",
        (
            "Excellent skin quality; smooth, clear, and well-hydrated.",
            "Good skin quality; generally healthy with minor issues like mild redness or dryness.",
            "Fair skin quality; some noticeable issues such as moderate acne or redness.",
            "Poor skin quality; significant concerns like dryness, redness, or acne.",
            "Very poor skin quality; multiple severe issues affecting skin health.",
        ),
        "Overall skin quality is good, with slight redness and mild dryness, scoring 70.",
    ),
}

_BANDS = ("81-100", "61-80", "41-60", "21-40", "0-20")

_TEMPLATE_EXPLANATIONS = {
    "Redness": "Explanation of redness score.",
    "Hydration": "Explanation of hydration score.",
    "Pores": "Explanation of pores score.",
    "Acne": "Explanation of acne score.",
    "Overall Skin Quality": "Explanation of overall skin quality.",
}


def _render_attribute(name: str) -> str:
    description, band_texts, example = _GUIDES[name]
    lines = [f"{name}:", description, "Scoring Guide:"]
    lines.extend(f"{band}: {text}" for band, text in zip(_BANDS, band_texts))
    lines.append(f'Example Explanation: "{example}"')
    return "\n".join(lines)


def _render_schema() -> str:
    rows = [f'"{name}": {{"score": 0, "explanation": "{_TEMPLATE_EXPLANATIONS[name]}"}}' for name in ATTRIBUTES]
    return "{\n" + ",\n".join(rows) + "\n}"


def build_analysis_prompt() -> str:
    """
    Renders the instruction text. It never contains submission data, photos are sent as separate content parts.
    """
    sections = [_ROLE, "Attributes for Evaluation:"]
    sections.extend(_render_attribute(name) for name in ATTRIBUTES)
    sections.append(
        "**IMPORTANT**: Output must be only a valid JSON object and contain all five attributes with integer scores "
        "from 0 to 100 and explanations. Do not include any additional text, commentary or code fences.")
    sections.append(_render_schema())
    return "\n\n".join(sections)


ANALYSIS_PROMPT = build_analysis_prompt()
