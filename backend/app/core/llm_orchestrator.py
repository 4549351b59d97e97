"""Grammar-check orchestration, whole-text rewrites and the small provider-facing helpers around them."""

import logging
import re
import time
from collections.abc import Mapping, Sequence
from typing import Any

from app.core.exceptions import EmptyInputError, MissingCredentialError, ProviderTransportError
from app.core.postprocess import apply_suggestions, count_words, process_suggestions
from app.core.prompt_builder import (
    ENHANCED_TEXT_HEADING,
    IMPROVEMENT_SUMMARY_HEADING,
    SIMPLIFY_DEFAULT_GRADE,
    build_chat_messages,
    build_condense_prompt,
    build_enhancement_prompt,
    build_expand_prompt,
    build_full_mode_prompt,
    build_humanize_prompt,
    build_simplify_prompt,
    normalize_prompt_options,
)
from app.core.response_formatter import format_response
from app.core.sanitizer import sanitize_text, strip_markup
from app.models.model_config import LOCAL_PROVIDERS, ChatMessage, ModelConfig, Provider
from app.services.dispatch import AIDispatcher, DispatchResult, resolve_provider
from app.utils.json_parser import extract_suggestion_candidates

logger = logging.getLogger(__name__)

CHECK_MODE = "full"
CHECK_STRATEGY = "ai-priority"
CONNECTION_CHECK_PROMPT = "Respond with 'OK' to confirm connection is working."
PREVIEW_CHARS = 100
NO_SUMMARY = "No specific improvements identified."

# Headings may come wrapped in markdown bold; the summary section is optional
_ENHANCED_SECTION = re.compile(
    rf"\**{re.escape(ENHANCED_TEXT_HEADING)}\**\s*(.*?)\s*"
    rf"(?:\**{re.escape(IMPROVEMENT_SUMMARY_HEADING)}\**\s*(.*))?$",
    re.DOTALL | re.IGNORECASE,
)


async def check_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    options: Mapping[str, Any] | None = None,
    *,
    language: str = "en-US",
    request_id: str | None = None,
) -> dict[str, Any]:
    """Full pipeline: sanitize, prompt, dispatch, extract, validate, format.

    Provider failures propagate; a reply with no usable suggestions is a
    valid empty result.
    """
    start = time.perf_counter()
    clean = sanitize_text(text)
    if not clean:
        raise EmptyInputError("text")

    opts = normalize_prompt_options(options)
    system, user = build_full_mode_prompt(clean, opts)
    route = await dispatcher.dispatch_with_route(build_chat_messages(system, user), model_config)

    candidates = [_clean_candidate(c) for c in extract_suggestion_candidates(route.text)]
    result = process_suggestions(candidates, clean)
    logger.info(
        "Check via %s/%s: %d candidate(s), %d suggestion(s) kept",
        route.provider.value, route.model, len(candidates), len(result),
    )

    elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
    return format_response(
        result.suggestions,
        clean,
        {
            "processingTime": elapsed_ms,
            "mode": CHECK_MODE,
            "strategy": CHECK_STRATEGY,
            "provider": route.provider.value,
            "model": route.model,
            "substituted": route.substituted,
            "language": language,
            "dialect": opts.dialect,
            "rejectedSuggestions": len(result.rejections),
            "correctedText": apply_suggestions(clean, result.suggestions),
            "requestId": request_id,
        },
    )


async def reply_to_chat(
    messages: Sequence[ChatMessage],
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
) -> str:
    """One stateless chat turn. Nothing is stored."""
    reply = await dispatcher.dispatch(list(messages), model_config)
    return sanitize_text(reply)


async def test_connection(model_config: ModelConfig, dispatcher: AIDispatcher) -> dict[str, Any]:
    """Check a provider: list the registry for Ollama, send a one-liner otherwise."""
    provider = resolve_provider(model_config.provider)

    if provider is Provider.ollama:
        models = await dispatcher.ollama.list_models()
        return {
            "success": True,
            "provider": provider.value,
            "message": "Ollama connection successful",
            "models": models,
        }

    if provider not in LOCAL_PROVIDERS and not dispatcher.resolve_credential(provider, model_config.api_key):
        raise MissingCredentialError(provider)

    reply = await dispatcher.dispatch(CONNECTION_CHECK_PROMPT, model_config)
    preview = reply[:PREVIEW_CHARS] + ("..." if len(reply) > PREVIEW_CHARS else "")
    logger.info("Test response from %s: %s", provider.value, preview)
    return {
        "success": True,
        "provider": provider.value,
        "message": f"{provider.label} connection successful",
        "response": preview,
    }


async def list_local_models(dispatcher: AIDispatcher) -> list[dict[str, Any]]:
    """Models available on the local Ollama server."""
    return await dispatcher.ollama.list_models()


# ---------------------------------------------------------------------------
# Whole-text rewrites
# ---------------------------------------------------------------------------


async def enhance_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    enhancement_type: str = "comprehensive",
) -> dict[str, Any]:
    """Rewrite the whole text and report a summary of what changed.

    A reply without the expected headings leaves the text unchanged.
    """
    clean = _require_text(text)
    system, user = build_enhancement_prompt(clean, enhancement_type)
    route = await dispatcher.dispatch_with_route(build_chat_messages(system, user), model_config)

    enhanced, summary = split_enhancement_reply(route.text)
    if enhanced is None:
        logger.warning(
            "Enhancement reply from %s had no '%s' section", route.provider.value, ENHANCED_TEXT_HEADING
        )
    enhanced = enhanced or clean

    original_words, enhanced_words = count_words(clean), count_words(enhanced)
    return {
        "originalText": clean,
        "enhancedText": enhanced,
        "improvementSummary": summary or NO_SUMMARY,
        "enhancementType": enhancement_type,
        "metrics": {
            "originalWordCount": original_words,
            "enhancedWordCount": enhanced_words,
            "wordCountChange": enhanced_words - original_words,
            "characterCountChange": len(enhanced) - len(clean),
        },
        "provider": route.provider.value,
        "model": route.model,
    }


async def humanize_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    *,
    tone: str,
    strength: str,
) -> dict[str, Any]:
    clean = _require_text(text)
    rewritten, route = await _rewrite(build_humanize_prompt(clean, tone, strength), model_config, dispatcher)
    return {
        "original": clean,
        "humanized": rewritten,
        "tone": tone,
        "strength": strength,
        **_length_meta(clean, rewritten),
        "provider": route.provider.value,
        "model": route.model,
    }


async def simplify_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    *,
    target_grade: int = SIMPLIFY_DEFAULT_GRADE,
) -> dict[str, Any]:
    clean = _require_text(text)
    rewritten, route = await _rewrite(build_simplify_prompt(clean, target_grade), model_config, dispatcher)
    return {
        "original": clean,
        "simplified": rewritten,
        "targetGrade": target_grade,
        **_length_meta(clean, rewritten),
        "provider": route.provider.value,
        "model": route.model,
    }


async def expand_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    *,
    target_length: str = "medium",
) -> dict[str, Any]:
    clean = _require_text(text)
    rewritten, route = await _rewrite(build_expand_prompt(clean, target_length), model_config, dispatcher)
    return {
        "original": clean,
        "expanded": rewritten,
        "targetLength": target_length,
        **_length_meta(clean, rewritten),
        "provider": route.provider.value,
        "model": route.model,
    }


async def condense_text(
    text: str,
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
    *,
    target_length: str = "medium",
) -> dict[str, Any]:
    clean = _require_text(text)
    rewritten, route = await _rewrite(build_condense_prompt(clean, target_length), model_config, dispatcher)
    return {
        "original": clean,
        "condensed": rewritten,
        "targetLength": target_length,
        "compressionRatio": round(len(rewritten) / len(clean), 2),
        **_length_meta(clean, rewritten),
        "provider": route.provider.value,
        "model": route.model,
    }


def split_enhancement_reply(reply: str) -> tuple[str | None, str | None]:
    """Pull the rewritten text and the summary out of an enhancement reply."""
    match = _ENHANCED_SECTION.search(reply)
    if not match:
        return None, None
    enhanced = sanitize_text(match.group(1)) or None
    summary = sanitize_text(match.group(2)) if match.group(2) is not None else None
    return enhanced, summary or None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clean_candidate(candidate: Any) -> Any:
    """Strip markup from model-authored strings; leave everything else to the validator."""
    if not isinstance(candidate, dict):
        return candidate
    cleaned = dict(candidate)
    for key in ("suggested", "explanation"):
        if isinstance(cleaned.get(key), str):
            cleaned[key] = strip_markup(cleaned[key])
    return cleaned


def _require_text(text: str) -> str:
    clean = sanitize_text(text)
    if not clean:
        raise EmptyInputError("text")
    return clean


async def _rewrite(
    prompt: tuple[str, str],
    model_config: ModelConfig,
    dispatcher: AIDispatcher,
) -> tuple[str, DispatchResult]:
    route = await dispatcher.dispatch_with_route(build_chat_messages(*prompt), model_config)
    rewritten = sanitize_text(route.text)
    if not rewritten:
        raise ProviderTransportError(route.provider.value, "returned an empty reply")
    return rewritten, route


def _length_meta(original: str, rewritten: str) -> dict[str, int]:
    return {"originalLength": len(original), "newLength": len(rewritten)}
