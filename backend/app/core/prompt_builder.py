"""Dynamic prompt construction for LLM calls."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.models.model_config import ChatMessage

DIALECTS = ("en-US", "en-GB", "en-CA", "en-AU")
SERIAL_COMMA_STYLES = ("require", "optional", "never")
TITLE_CASE_STYLES = ("Sentence case", "Title Case", "ALL CAPS", "lowercase")
GRADE_RANGE = (1, 20)

# Rewrite modes
ENHANCEMENT_TYPES = ("comprehensive", "formal", "casual")
HUMANIZE_TONES = ("neutral", "friendly", "professional")
HUMANIZE_STRENGTHS = ("light", "medium", "strong")
SIMPLIFY_DEFAULT_GRADE = 8
EXPANSION_TARGETS = {"short": "25% longer", "medium": "50% longer", "long": "100% longer"}
CONDENSATION_TARGETS = {"short": "50% shorter", "medium": "25% shorter", "summary": "75% shorter"}

ENHANCED_TEXT_HEADING = "ENHANCED TEXT:"
IMPROVEMENT_SUMMARY_HEADING = "IMPROVEMENT SUMMARY:"

_ENHANCEMENTS: dict[str, tuple[str, list[tuple[str, str]]]] = {
    "comprehensive": (
        "Improve the grammar, spelling, style, tone, clarity and engagement of the text.",
        [
            ("Grammar & Spelling", "specific fixes made"),
            ("Style & Tone", "style and tone improvements"),
            ("Clarity & Structure", "structural and clarity changes"),
            ("Engagement", "engagement improvements"),
        ],
    ),
    "formal": (
        "Rewrite the text in a more formal, professional tone.",
        [
            ("Formality", "formality improvements"),
            ("Professional Language", "professional language changes"),
            ("Structure", "structural improvements"),
        ],
    ),
    "casual": (
        "Rewrite the text in a more casual, conversational tone while keeping it clear.",
        [
            ("Tone", "tone changes"),
            ("Conversational Elements", "conversational improvements"),
            ("Engagement", "engagement improvements"),
        ],
    ),
}

_TONE_INSTRUCTIONS = {
    "neutral": "Use a natural, neutral tone that sounds human and authentic.",
    "friendly": "Use a warm, conversational tone that sounds natural and approachable.",
    "professional": "Use a polished, professional tone appropriate for business communication.",
}

_STRENGTH_INSTRUCTIONS = {
    "light": "Make minimal changes: only adjust phrasing that clearly sounds machine-written.",
    "medium": "Make moderate changes to improve naturalness while preserving the original flow.",
    "strong": "Make substantial changes to achieve a more natural human voice.",
}

_REWRITE_ONLY = "Return only the rewritten text without any explanations or additional formatting."


@dataclass(frozen=True)
class PromptOptions:
    """Style settings passed to the model; always within their allowed sets."""

    dialect: str = "en-US"
    serial_comma: str = "require"
    title_case_style: str = "Sentence case"
    target_grade: int = 9


def normalize_prompt_options(opts: Mapping[str, Any] | None = None) -> PromptOptions:
    """Replace missing or out-of-set option values with their defaults.

    Accepts camelCase keys as sent by clients (``serialComma``, ``targetGrade``...).
    """
    opts = opts or {}
    defaults = PromptOptions()

    grade = opts.get("targetGrade")
    low, high = GRADE_RANGE
    # bool is an int subclass; True is not a grade
    if isinstance(grade, bool) or not isinstance(grade, int) or not low <= grade <= high:
        grade = defaults.target_grade

    return PromptOptions(
        dialect=_pick(opts.get("dialect"), DIALECTS, defaults.dialect),
        serial_comma=_pick(opts.get("serialComma"), SERIAL_COMMA_STYLES, defaults.serial_comma),
        title_case_style=_pick(opts.get("titleCaseStyle"), TITLE_CASE_STYLES, defaults.title_case_style),
        target_grade=grade,
    )


def build_full_mode_prompt(text: str, opts: PromptOptions | Mapping[str, Any] | None = None) -> tuple[str, str]:
    """Build the grammar-check prompt.

    Returns (system_message, user_message) tuple for proper chat formatting.
    """
    if not isinstance(opts, PromptOptions):
        opts = normalize_prompt_options(opts)

    system_parts: list[str] = [
        "You are a professional grammar + style correction engine.",
        "Detect grammar, spelling, punctuation, style, tone, readability issues.",
        "Return JSON array only. Follow the schema exactly.",
        "",
        "Settings:",
        f"- dialect: {opts.dialect}",
        f"- serialComma: {opts.serial_comma}",
        f"- titleCaseStyle: {opts.title_case_style}",
        f"- targetGrade: {opts.target_grade}",
        "",
        "Return a JSON array where each suggestion object has:",
        "- original: string (exact text to replace)",
        "- suggested: string (replacement text)",
        "- explanation: string (max 160 chars, why this change improves the text)",
        "- index: integer (start position in original text)",
        "- endIndex: integer (end position in original text)",
        '- category: string (one of: "grammar", "spelling", "punctuation", "style", "tone", "readability")',
        '- severity: string (one of: "low", "medium", "high")',
        "- confidence: number (0.0 to 1.0, how confident you are in this suggestion)",
        "- sentenceIndex: integer (which sentence this occurs in, starting from 0)",
        "- ruleId: string (identifier for the rule that triggered this suggestion)",
        '- source: string (always "ai" for this mode)',
        "",
        "Focus on:",
        "1. Grammar errors and typos",
        "2. Punctuation and capitalization",
        "3. Style improvements for clarity",
        "4. Tone consistency",
        "5. Readability for target grade level",
        "",
        "Be precise with index positions. Only suggest changes that genuinely improve the text.",
    ]

    user_parts = [
        "TEXT:",
        "<<<",
        text,
        ">>>",
        "",
        "Return JSON array only. No explanatory text.",
    ]

    return "\n".join(system_parts), "\n".join(user_parts)


def build_enhancement_prompt(text: str, enhancement_type: str = "comprehensive") -> tuple[str, str]:
    """Whole-text rewrite that also reports what changed, under fixed headings."""
    instruction, summary_sections = _ENHANCEMENTS.get(enhancement_type, _ENHANCEMENTS["comprehensive"])

    system_parts: list[str] = [
        "You are a professional writing editor.",
        instruction,
        "Keep the original meaning and all key information.",
        "",
        "Format your response exactly as follows:",
        "",
        f"**{ENHANCED_TEXT_HEADING}**",
        "[the complete rewritten text]",
        "",
        f"**{IMPROVEMENT_SUMMARY_HEADING}**",
    ]
    system_parts += [f"**{section}:** [{hint}]" for section, hint in summary_sections]
    system_parts.append("**Word Count:** Original: X words -> Enhanced: Y words")

    return "\n".join(system_parts), _text_block(text, "Follow the response format exactly.")


def build_humanize_prompt(text: str, tone: str, strength: str) -> tuple[str, str]:
    """Rewrite stiff, machine-sounding text so it reads naturally."""
    if tone not in HUMANIZE_TONES:
        raise ValueError(f"Invalid tone. Must be one of: {', '.join(HUMANIZE_TONES)}")
    if strength not in HUMANIZE_STRENGTHS:
        raise ValueError(f"Invalid strength. Must be one of: {', '.join(HUMANIZE_STRENGTHS)}")

    system_parts = [
        "You are a skilled editor who makes stiff, formulaic text read like natural human writing.",
        _TONE_INSTRUCTIONS[tone],
        _STRENGTH_INSTRUCTIONS[strength],
        "Preserve the original meaning and key information.",
        _REWRITE_ONLY,
    ]
    return "\n".join(system_parts), _text_block(text, _REWRITE_ONLY)


def build_simplify_prompt(text: str, target_grade: int = SIMPLIFY_DEFAULT_GRADE) -> tuple[str, str]:
    low, high = GRADE_RANGE
    if isinstance(target_grade, bool) or not isinstance(target_grade, int) or not low <= target_grade <= high:
        raise ValueError(f"targetGrade must be an integer between {low} and {high}")

    system_parts = [
        f"Simplify the text for a grade {target_grade} reading level.",
        "- Use shorter sentences",
        "- Replace complex words with simpler alternatives",
        "- Keep the original meaning",
        _REWRITE_ONLY,
    ]
    return "\n".join(system_parts), _text_block(text, _REWRITE_ONLY)


def build_expand_prompt(text: str, target_length: str = "medium") -> tuple[str, str]:
    if target_length not in EXPANSION_TARGETS:
        raise ValueError(f"Invalid targetLength. Must be one of: {', '.join(EXPANSION_TARGETS)}")

    system_parts = [
        f"Expand the text to be approximately {EXPANSION_TARGETS[target_length]}.",
        "- Add relevant details and examples",
        "- Keep the original tone, style and core message",
        _REWRITE_ONLY,
    ]
    return "\n".join(system_parts), _text_block(text, _REWRITE_ONLY)


def build_condense_prompt(text: str, target_length: str = "medium") -> tuple[str, str]:
    if target_length not in CONDENSATION_TARGETS:
        raise ValueError(f"Invalid targetLength. Must be one of: {', '.join(CONDENSATION_TARGETS)}")

    system_parts = [
        f"Condense the text to be approximately {CONDENSATION_TARGETS[target_length]}.",
        "- Preserve all key information",
        "- Remove redundancy and filler",
        "- Keep it clear and easy to follow",
        _REWRITE_ONLY,
    ]
    return "\n".join(system_parts), _text_block(text, _REWRITE_ONLY)


def build_chat_messages(system: str, user: str) -> list[ChatMessage]:
    """Messages for chat-completion providers."""
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]


def build_completion_prompt(system: str, user: str) -> str:
    """Single prompt string for completion-style providers (Ollama)."""
    return f"{system}\n\n{user}"


def _pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    return value if value in allowed else default


def _text_block(text: str, closing: str) -> str:
    return "\n".join(["TEXT:", "<<<", text, ">>>", "", closing])
