"""Tests for the grammar-check orchestrator and its provider helpers."""

import json

import pytest

from app.core import llm_orchestrator
from app.core.exceptions import EmptyInputError, MissingCredentialError, ProviderTransportError
from app.models.model_config import ModelConfig, Provider

TEXT = "She go to the market. " + " ".join(["word"] * 95)

GO_FIX = {
    "original": "go",
    "suggested": "goes",
    "explanation": "Subject-verb agreement.",
    "index": 4,
    "endIndex": 6,
    "category": "grammar",
    "severity": "medium",
    "confidence": 0.8,
    "ruleId": "SVA",
}

OLLAMA = ModelConfig(provider="ollama", model="gemma3:1b")


def _reply(*items) -> str:
    return "```json\n" + json.dumps(list(items)) + "\n```"


# ---------------------------------------------------------------------------
# check_text
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCheckText:
    async def test_happy_path(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = json.dumps([GO_FIX])
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher(), request_id="req-1")

        assert set(result) == {"suggestions", "writingScore", "metadata"}
        [suggestion] = result["suggestions"]
        assert suggestion["original"] == "go"
        assert suggestion["suggested"] == "goes"
        assert suggestion["index"] == 4
        assert suggestion["endIndex"] == 6
        assert suggestion["category"] == "grammar"
        assert suggestion["sentenceIndex"] == 0
        assert suggestion["ruleId"] == "SVA"
        assert suggestion["source"] == "unknown"
        assert result["writingScore"] == 72

        meta = result["metadata"]
        assert meta["totalSuggestions"] == 1
        assert meta["textLength"] == len(TEXT)
        assert meta["wordCount"] == 100
        assert meta["mode"] == "full"
        assert meta["strategy"] == "ai-priority"
        assert meta["provider"] == "ollama"
        assert meta["model"] == "gemma3:1b"
        assert meta["substituted"] is False
        assert meta["rejectedSuggestions"] == 0
        assert meta["requestId"] == "req-1"
        assert meta["processingTime"] >= 0
        assert meta["correctedText"].startswith("She goes to the market.")

    async def test_prompt_is_sent_as_chat_messages(self, make_dispatcher, clients):
        await llm_orchestrator.check_text(
            TEXT, OLLAMA, make_dispatcher(), {"dialect": "en-GB", "targetGrade": 6}
        )
        request = clients[Provider.ollama].requests[0]
        system, user = request.messages
        assert system.role == "system"
        assert "- dialect: en-GB" in system.content
        assert "- targetGrade: 6" in system.content
        assert user.role == "user"
        assert TEXT in user.content

    async def test_invalid_candidates_are_counted(self, make_dispatcher, clients):
        wrong_position = dict(GO_FIX, index=0, endIndex=2)
        unknown_key = dict(GO_FIX, extra="x")
        clients[Provider.ollama].reply = _reply(GO_FIX, wrong_position, unknown_key, "not an object")
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher())
        assert result["metadata"]["totalSuggestions"] == 1
        assert result["metadata"]["rejectedSuggestions"] == 3

    async def test_overlapping_candidates_keep_the_more_confident(self, make_dispatcher, clients):
        weaker = dict(GO_FIX, original="She go", suggested="She goes", index=0, confidence=0.5)
        clients[Provider.ollama].reply = _reply(weaker, GO_FIX)
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher())
        assert [s["original"] for s in result["suggestions"]] == ["go"]

    async def test_unparseable_reply_is_an_empty_result(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "Your text looks great!"
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher())
        assert result["suggestions"] == []
        assert result["writingScore"] == 100
        assert result["metadata"]["correctedText"] == TEXT

    async def test_markup_in_replacement_is_stripped(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = json.dumps(
            [dict(GO_FIX, suggested="<b>goes</b>", explanation="<i>Agreement</i>")]
        )
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher())
        [suggestion] = result["suggestions"]
        assert suggestion["suggested"] == "goes"
        assert suggestion["explanation"] == "Agreement"

    async def test_html_input_is_sanitized_before_prompting(self, make_dispatcher, clients):
        result = await llm_orchestrator.check_text(
            "<p>Hello <script>alert(1)</script>world</p>", OLLAMA, make_dispatcher()
        )
        assert result["metadata"]["textLength"] == len("Hello world")
        assert "<script>" not in clients[Provider.ollama].requests[0].messages[1].content

    async def test_stray_marked_section_in_input(self, make_dispatcher, clients):
        text = "Please use a <![ marker."
        result = await llm_orchestrator.check_text(text, OLLAMA, make_dispatcher())
        assert result["metadata"]["textLength"] == len(text)
        assert text in clients[Provider.ollama].requests[0].messages[1].content

    async def test_stray_marked_section_in_candidate(self, make_dispatcher, clients):
        teh = {
            "original": "Teh", "suggested": "The", "explanation": "Spelling.",
            "index": 0, "endIndex": 3, "confidence": 0.95,
        }
        sat = {
            "original": "sat", "suggested": "sits", "explanation": "Use a <![ marker here",
            "index": 8, "endIndex": 11,
        }
        clients[Provider.ollama].reply = _reply(teh, sat)
        result = await llm_orchestrator.check_text("Teh cat sat.", OLLAMA, make_dispatcher())
        assert [s["original"] for s in result["suggestions"]] == ["Teh", "sat"]
        assert result["suggestions"][1]["explanation"] == "Use a <![ marker here"

    @pytest.mark.parametrize("text", ["", "   ", "<br/>"])
    async def test_blank_text_is_rejected(self, make_dispatcher, clients, text):
        with pytest.raises(EmptyInputError):
            await llm_orchestrator.check_text(text, OLLAMA, make_dispatcher())
        assert clients[Provider.ollama].requests == []

    async def test_transport_errors_propagate(self, make_dispatcher, clients):
        clients[Provider.ollama].errors = [ProviderTransportError("ollama", "down")]
        with pytest.raises(ProviderTransportError):
            await llm_orchestrator.check_text(TEXT, OLLAMA, make_dispatcher())

    async def test_substitution_is_reported(self, make_dispatcher, clients):
        from app.services.dispatch import DeploymentPolicy

        dispatcher = make_dispatcher(
            policy=DeploymentPolicy(auto_substitute_local_provider=True),
            credentials={Provider.groq: "gk"},
        )
        result = await llm_orchestrator.check_text(TEXT, OLLAMA, dispatcher)
        assert result["metadata"]["provider"] == "groq"
        assert result["metadata"]["substituted"] is True


# ---------------------------------------------------------------------------
# Chat, connection test, model listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestProviderHelpers:
    async def test_chat_reply_is_sanitized(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "  <b>Hi</b> there  "
        reply = await llm_orchestrator.reply_to_chat(
            [{"role": "user", "content": "hello"}], OLLAMA, make_dispatcher()
        )
        assert reply == "Hi there"

    async def test_connection_ollama_lists_models(self, make_dispatcher, clients):
        result = await llm_orchestrator.test_connection(OLLAMA, make_dispatcher())
        assert result["success"] is True
        assert result["provider"] == "ollama"
        assert result["message"] == "Ollama connection successful"
        assert [m["name"] for m in result["models"]] == ["gemma3:1b"]
        assert clients[Provider.ollama].requests == []

    async def test_connection_cloud_sends_check_prompt(self, make_dispatcher, clients):
        clients[Provider.openai].reply = "OK"
        result = await llm_orchestrator.test_connection(
            ModelConfig(provider="openai", model="gpt-4o-mini", apiKey="sk-1"), make_dispatcher()
        )
        assert result == {
            "success": True,
            "provider": "openai",
            "message": "OpenAI connection successful",
            "response": "OK",
        }
        assert clients[Provider.openai].requests[0].prompt == llm_orchestrator.CONNECTION_CHECK_PROMPT

    async def test_connection_preview_is_truncated(self, make_dispatcher, clients):
        clients[Provider.groq].reply = "x" * 150
        result = await llm_orchestrator.test_connection(
            ModelConfig(provider="groq", apiKey="gk"), make_dispatcher()
        )
        assert result["response"] == "x" * 100 + "..."

    async def test_connection_uses_configured_key(self, make_dispatcher, clients):
        result = await llm_orchestrator.test_connection(
            ModelConfig(provider="deepseek"), make_dispatcher(credentials={Provider.deepseek: "dk"})
        )
        assert result["message"] == "DeepSeek connection successful"

    async def test_connection_without_key(self, make_dispatcher, clients):
        with pytest.raises(MissingCredentialError):
            await llm_orchestrator.test_connection(ModelConfig(provider="qwen"), make_dispatcher())
        assert clients[Provider.qwen].requests == []

    async def test_connection_lmstudio_needs_no_key(self, make_dispatcher, clients):
        result = await llm_orchestrator.test_connection(ModelConfig(provider="lmstudio"), make_dispatcher())
        assert result["message"] == "LM Studio connection successful"

    async def test_connection_ollama_unreachable(self, make_dispatcher, clients):
        clients[Provider.ollama].errors = [ProviderTransportError("ollama", "refused")]
        with pytest.raises(ProviderTransportError):
            await llm_orchestrator.test_connection(OLLAMA, make_dispatcher())

    async def test_list_local_models(self, make_dispatcher, clients):
        clients[Provider.ollama].models = [{"name": "llama3:latest", "size": 1, "modified_at": None}]
        models = await llm_orchestrator.list_local_models(make_dispatcher())
        assert models == [{"name": "llama3:latest", "size": 1, "modified_at": None}]


# ---------------------------------------------------------------------------
# Whole-text rewrites
# ---------------------------------------------------------------------------

ENHANCED_REPLY = """**ENHANCED TEXT:**
She goes to the market every day.

**IMPROVEMENT SUMMARY:**
**Grammar & Spelling:** Fixed subject-verb agreement.
**Word Count:** Original: 5 words -> Enhanced: 7 words"""


@pytest.mark.asyncio
class TestRewrites:
    async def test_enhance(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = ENHANCED_REPLY
        result = await llm_orchestrator.enhance_text("She go to the market.", OLLAMA, make_dispatcher())

        assert result["originalText"] == "She go to the market."
        assert result["enhancedText"] == "She goes to the market every day."
        assert result["improvementSummary"].startswith("**Grammar & Spelling:** Fixed")
        assert result["enhancementType"] == "comprehensive"
        assert result["metrics"] == {
            "originalWordCount": 5,
            "enhancedWordCount": 7,
            "wordCountChange": 2,
            "characterCountChange": 12,
        }
        assert result["provider"] == "ollama"
        assert result["model"] == "gemma3:1b"

    async def test_enhance_type_reaches_the_prompt(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = ENHANCED_REPLY
        result = await llm_orchestrator.enhance_text("hey there", OLLAMA, make_dispatcher(), "formal")
        system = clients[Provider.ollama].requests[0].messages[0].content
        assert "formal, professional tone" in system
        assert result["enhancementType"] == "formal"

    async def test_enhance_without_headings_keeps_the_text(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "Looks fine to me."
        result = await llm_orchestrator.enhance_text("Fine text.", OLLAMA, make_dispatcher())
        assert result["enhancedText"] == "Fine text."
        assert result["improvementSummary"] == llm_orchestrator.NO_SUMMARY
        assert result["metrics"]["wordCountChange"] == 0

    async def test_enhance_without_summary(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "ENHANCED TEXT:\nBetter text."
        result = await llm_orchestrator.enhance_text("Worse text.", OLLAMA, make_dispatcher())
        assert result["enhancedText"] == "Better text."
        assert result["improvementSummary"] == llm_orchestrator.NO_SUMMARY

    async def test_humanize(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "  <p>Hey, thanks for writing in!</p> "
        result = await llm_orchestrator.humanize_text(
            "We acknowledge receipt of your message.",
            OLLAMA,
            make_dispatcher(),
            tone="friendly",
            strength="strong",
        )
        assert result["original"] == "We acknowledge receipt of your message."
        assert result["humanized"] == "Hey, thanks for writing in!"
        assert result["tone"] == "friendly"
        assert result["strength"] == "strong"
        assert result["originalLength"] == 39
        assert result["newLength"] == 27
        system = clients[Provider.ollama].requests[0].messages[0].content
        assert "warm, conversational tone" in system

    async def test_humanize_rejects_unknown_tone(self, make_dispatcher, clients):
        with pytest.raises(ValueError, match="Invalid tone"):
            await llm_orchestrator.humanize_text(
                "Some text.", OLLAMA, make_dispatcher(), tone="sarcastic", strength="light"
            )
        assert clients[Provider.ollama].requests == []

    async def test_simplify(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "Use less."
        result = await llm_orchestrator.simplify_text(
            "Utilize fewer resources.", OLLAMA, make_dispatcher(), target_grade=3
        )
        assert result["simplified"] == "Use less."
        assert result["targetGrade"] == 3
        assert "grade 3 reading level" in clients[Provider.ollama].requests[0].messages[0].content

    async def test_expand(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "The cat sat quietly on the warm mat."
        result = await llm_orchestrator.expand_text(
            "The cat sat.", OLLAMA, make_dispatcher(), target_length="long"
        )
        assert result["expanded"] == "The cat sat quietly on the warm mat."
        assert result["targetLength"] == "long"
        assert "100% longer" in clients[Provider.ollama].requests[0].messages[0].content

    async def test_condense(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "Short."
        result = await llm_orchestrator.condense_text(
            "This is far too long.", OLLAMA, make_dispatcher(), target_length="summary"
        )
        assert result["condensed"] == "Short."
        assert result["compressionRatio"] == 0.29
        assert result["originalLength"] == 21
        assert result["newLength"] == 6
        assert "75% shorter" in clients[Provider.ollama].requests[0].messages[0].content

    async def test_blank_text_is_rejected(self, make_dispatcher, clients):
        with pytest.raises(EmptyInputError):
            await llm_orchestrator.expand_text("<br/>", OLLAMA, make_dispatcher())
        assert clients[Provider.ollama].requests == []

    async def test_empty_reply_is_a_provider_error(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "<p> </p>"
        with pytest.raises(ProviderTransportError):
            await llm_orchestrator.condense_text("Some text here.", OLLAMA, make_dispatcher())

    async def test_stray_marked_section_in_reply(self, make_dispatcher, clients):
        clients[Provider.ollama].reply = "Use a <![ marker, then stop."
        result = await llm_orchestrator.simplify_text("Employ a marker.", OLLAMA, make_dispatcher())
        assert result["simplified"] == "Use a <![ marker, then stop."


def test_split_enhancement_reply_without_bold_headings():
    enhanced, summary = llm_orchestrator.split_enhancement_reply(
        "enhanced text:\nNew words.\nImprovement Summary:\nTighter."
    )
    assert enhanced == "New words."
    assert summary == "Tighter."
