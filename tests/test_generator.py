"""Tests for prompt construction and AI response handling."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from app.core.errors import GenerationFailed, InvalidGeneratedCard, MalformedAIResponse
from app.modules.documents.generator import (
    FlashCardGenerator,
    build_prompt,
    extract_json_object,
    parse_response,
)
from tests.conftest import deck, failing_model, fib_card, matching_card, mc_card, valid_cards


class TestPrompt:
    def test_prompt_embeds_content_and_contract(self):
        prompt = build_prompt("The Krebs cycle produces ATP.")
        assert prompt.endswith("The Krebs cycle produces ATP.")
        for card_type in ("multiple_choice", "fill_in_blank", "matching"):
            assert card_type in prompt
        assert '"flashCards"' in prompt
        assert "at minimum 5 cards" in prompt
        assert "1, 2 or 3" in prompt
        assert "Do not include any text before or after the JSON" in prompt

    def test_prompt_is_deterministic(self):
        assert build_prompt("abc") == build_prompt("abc")

    def test_generator_never_asks_for_fewer_than_five(self):
        assert FlashCardGenerator(min_cards=2).min_cards == 5
        assert "at minimum 8 cards" in FlashCardGenerator(min_cards=8).build_prompt("x")


class TestJsonExtraction:
    def test_prose_around_object(self):
        raw = 'Sure! Here you go:\n```json\n{"a": {"b": 1}}\n```\nHope it helps.'
        assert extract_json_object(raw) == '{"a": {"b": 1}}'

    @pytest.mark.parametrize("raw", ["no json here", "only { opening", "only } closing"])
    def test_missing_braces_is_structure_error(self, raw):
        with pytest.raises(MalformedAIResponse) as exc_info:
            extract_json_object(raw)
        assert exc_info.value.reason == MalformedAIResponse.STRUCTURE

    def test_reversed_braces_is_parse_error(self, caplog):
        with pytest.raises(MalformedAIResponse) as exc_info:
            extract_json_object("} backwards {")
        assert exc_info.value.reason == MalformedAIResponse.PARSE
        assert exc_info.value.message == "Failed to parse AI response"
        assert "(parse)" in caplog.text


class TestParseResponse:
    def test_valid_deck_with_surrounding_prose(self):
        raw = "Here are your cards:\n" + json.dumps(deck(valid_cards())) + "\nEnjoy!"
        result = parse_response(raw)
        assert result.summary == "A short summary."
        assert len(result.flash_cards) == 5

    def test_unparseable_json_is_parse_error(self):
        with pytest.raises(MalformedAIResponse) as exc_info:
            parse_response('{"summary": "x", "flashCards": [ }')
        assert exc_info.value.reason == MalformedAIResponse.PARSE

    def test_structure_and_parse_share_message(self, caplog):
        caplog.set_level(logging.ERROR)
        with pytest.raises(MalformedAIResponse) as structure:
            parse_response("nothing")
        with pytest.raises(MalformedAIResponse) as parse:
            parse_response("{not json}")
        assert structure.value.message == parse.value.message
        assert "(structure)" in caplog.text
        assert "(parse)" in caplog.text

    def test_two_correct_options_is_rejected(self):
        cards = valid_cards()
        cards[0] = mc_card(correct=2)
        with pytest.raises(InvalidGeneratedCard) as exc_info:
            parse_response(json.dumps(deck(cards)))
        assert exc_info.value.errors

    def test_single_pair_matching_is_rejected(self):
        cards = valid_cards()
        cards[2] = matching_card(pairs=1)
        with pytest.raises(InvalidGeneratedCard):
            parse_response(json.dumps(deck(cards)))

    def test_bad_difficulty_is_rejected(self):
        cards = valid_cards()
        cards[1] = fib_card(difficulty=5)
        with pytest.raises(InvalidGeneratedCard):
            parse_response(json.dumps(deck(cards)))

    def test_too_few_cards(self):
        with pytest.raises(InvalidGeneratedCard):
            parse_response(json.dumps(deck([mc_card(), fib_card()])))

    def test_array_instead_of_object(self):
        # the brace span covers two objects, which is not valid JSON
        with pytest.raises(MalformedAIResponse):
            parse_response('[{"a": 1}, {"b": 2}]')


class TestGenerate:
    async def test_generate_returns_validated_deck(self, make_generator, valid_deck):
        generator = make_generator("```json\n" + json.dumps(valid_deck) + "\n```")
        result = await generator.generate("Some study text")
        assert len(result.flash_cards) == 5
        assert {c.type for c in result.flash_cards} == {
            "multiple_choice",
            "fill_in_blank",
            "matching",
        }

    async def test_model_sees_the_prompt(self, valid_deck):
        seen: list[str] = []

        def _fn(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            for message in messages:
                for part in message.parts:
                    content = getattr(part, "content", None)
                    if isinstance(content, str):
                        seen.append(content)
            return ModelResponse(parts=[TextPart(json.dumps(valid_deck))])

        generator = FlashCardGenerator(model=FunctionModel(_fn))
        await generator.generate("Cell membranes are lipid bilayers.")
        assert any("Cell membranes are lipid bilayers." in s for s in seen)

    async def test_model_failure_becomes_generation_failed(self):
        generator = FlashCardGenerator(model=failing_model(RuntimeError("quota exceeded")))
        with pytest.raises(GenerationFailed):
            await generator.generate("text")

    async def test_timeout_becomes_generation_failed(self, valid_deck):
        async def _slow(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            await asyncio.sleep(5)
            return ModelResponse(parts=[TextPart(json.dumps(valid_deck))])

        generator = FlashCardGenerator(model=FunctionModel(_slow), timeout_seconds=0.05)
        with pytest.raises(GenerationFailed):
            await generator.generate("text")

    async def test_malformed_reply_is_not_generation_failed(self, make_generator):
        generator = make_generator("I could not do that.")
        with pytest.raises(MalformedAIResponse):
            await generator.generate("text")
