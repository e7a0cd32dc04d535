"""Central configuration for the prompts sent to the generation backends."""

from __future__ import annotations

from typing import Any

LANGUAGE_LABELS = {
    "en": "English",
    "fr": "French",
}

LETTER_PROMPTS = {
    "letter_generation": {
        "base": (
            "Generate a professional motivation letter in {language_label} for {destination}.\n"
            "Goal: {goal}\n"
            "Additional Information: {additional_info}\n\n"
            "Please write a well-structured, formal motivation letter that incorporates the "
            "provided information.\n"
            "For any information that needs to be filled in by the user, use square brackets "
            "with descriptive text inside, like [your current position] or [specific project name].\n"
            "Make sure the letter follows the conventions and formalities of {language_label} "
            "business correspondence."
        ),
        "instructions": (
            "IMPORTANT:\n"
            "1. Do not use any markdown formatting. Return plain text only.\n"
            "2. Open with a clear, descriptive title that includes the destination name, like "
            "\"Motivation Letter for {destination}\".\n"
            "3. NEVER include real personal information like real names, addresses, phone "
            "numbers, or emails.\n"
            "4. For personal information, always use placeholders in square brackets like "
            "[your name], [your address], etc.\n"
            "5. Separate paragraphs with a single blank line."
        ),
    },
    "tone_rewrite": {
        "base": (
            "Rewrite the following {language_label} paragraph in a {tone} tone while maintaining "
            "its core meaning and keeping the same language: \"{paragraph}\""
        ),
        "instructions": (
            "Important:\n"
            "1. Keep any placeholder text in square brackets (e.g., [position name]) unchanged\n"
            "2. Maintain the same language as the input ({language_label})\n"
            "3. Preserve any formal letter conventions appropriate for the language\n"
            "4. Generate THREE different variations of the rewritten paragraph\n"
            "5. Format your response as a JSON array with three variations, like this:\n"
            "   [\"Variation 1\", \"Variation 2\", \"Variation 3\"]\n"
            "6. Do not use any markdown formatting. Return plain text only."
        ),
    },
    "placeholder_completion": {
        "base": (
            "Given the following paragraph from a motivation letter in {language_label}, "
            "complete the placeholder {placeholder} with appropriate content that fits "
            "naturally in the context.\n\n"
            "Paragraph: \"{paragraph}\""
        ),
        "instructions": (
            "Important:\n"
            "1. Your task is ONLY to COMPLETE the placeholder, not to reformulate or modify any "
            "existing text\n"
            "2. The completion should be concise and appropriate for a formal letter\n"
            "3. Maintain the same language as the input ({language_label})\n"
            "4. Return ONLY the text that should replace the placeholder, without any "
            "explanations or quotes\n"
            "5. Do not use any markdown formatting. Return plain text only.\n"
            "6. Do not use generic placeholders or default names like \"John Doe\" or "
            "\"Jean Dupont\"\n"
            "7. NEVER include real personal information like real names, addresses, phone "
            "numbers, or emails"
        ),
    },
    "paragraph_completion": {
        "base": (
            "Given the following paragraph from a motivation letter in {language_label}, "
            "please improve and complete it in a meaningful way.\n\n"
            "Paragraph: \"{paragraph}\""
        ),
        "instructions": (
            "Important:\n"
            "1. Maintain the same language as the input ({language_label})\n"
            "2. Keep the same tone and style as the original paragraph\n"
            "3. Return ONLY the completed paragraph, without any explanations or quotes\n"
            "4. Do not use any markdown formatting. Return plain text only.\n"
            "5. Do not use generic placeholders or default names like \"John Doe\" or "
            "\"Jean Dupont\"\n"
            "6. For any personal information, use placeholders in square brackets like "
            "[Your Name] or [Your Experience]"
        ),
    },
    "make_concise": {
        "base": (
            "Make the following paragraph from a motivation letter more concise while "
            "preserving its key points and meaning:\n\n"
            "Paragraph: \"{paragraph}\""
        ),
        "instructions": (
            "Important:\n"
            "1. Reduce the length by removing unnecessary words and phrases\n"
            "2. Maintain the same language as the input ({language_label})\n"
            "3. Return only the concise version, without any explanations\n"
            "4. Do not use any markdown formatting. Return plain text only.\n"
            "5. NEVER use default names like \"John Doe\", \"Jean Dupont\", or any other "
            "generic names.\n"
            "6. NEVER replace existing placeholders in square brackets - keep them exactly as "
            "they are.\n"
            "7. DO NOT INVENT specific details - use placeholders instead."
        ),
    },
}


def language_label(language: str) -> str:
    return LANGUAGE_LABELS.get((language or "").lower(), LANGUAGE_LABELS["en"])


def build_prompt(name: str, *, language: str = "en", **fields: Any) -> str:
    """Render the prompt called ``name`` with ``fields``.

    Raises ``KeyError`` for an unknown prompt name or a missing field.
    """

    entry = LETTER_PROMPTS[name]
    values = {"language_label": language_label(language), **fields}
    sections = [entry["base"], entry.get("instructions", "")]
    return "\n\n".join(section.format(**values) for section in sections if section)
