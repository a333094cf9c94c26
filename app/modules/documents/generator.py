"""Flash-card generator using pydantic-ai and the Gemini provider.

The model is asked for one JSON object ``{summary, flashCards}``. Its reply
is treated as untrusted text: the span between the first ``{`` and the last
``}`` is parsed, then validated against the card union before anything is
handed to the persistence layer. Provider imports stay lazy so the module
imports cleanly without credentials.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from pydantic import ValidationError
from pydantic_ai import Agent

from app.core.config import GenerationSettings
from app.core.errors import GenerationFailed, InvalidGeneratedCard, MalformedAIResponse
from app.core.logging import get_logger
from app.modules.documents.models.flashcards import GeneratedDeck

logger = get_logger(__name__)

DEFAULT_MODEL_NAME = "gemini-1.5-flash"
MIN_CARDS = 5

CARD_TYPES = ("multiple_choice", "fill_in_blank", "matching")

OUTPUT_SHAPE = """{
  "summary": "Brief summary of the content",
  "flashCards": [
    {
      "type": "multiple_choice",
      "question": "Question text",
      "multipleChoice": {
        "options": [
          {"text": "Correct answer", "isCorrect": true},
          {"text": "Wrong answer 1", "isCorrect": false},
          {"text": "Wrong answer 2", "isCorrect": false},
          {"text": "Wrong answer 3", "isCorrect": false}
        ]
      },
      "difficulty": 2
    },
    {
      "type": "fill_in_blank",
      "question": "Question with ___ blank",
      "answer": "correct answer",
      "difficulty": 1
    },
    {
      "type": "matching",
      "matching": {
        "pairs": [
          {"question": "Term 1", "answer": "Definition 1"},
          {"question": "Term 2", "answer": "Definition 2"},
          {"question": "Term 3", "answer": "Definition 3"}
        ]
      },
      "difficulty": 3
    }
  ]
}"""


def build_prompt(content: str, *, min_cards: int = MIN_CARDS) -> str:
    """Deterministic instruction prompt embedding the extracted text."""
    return (
        "You are a flash card generation assistant. Your task is to analyze the "
        "content and create flash cards.\n"
        "IMPORTANT: Your response must be a valid JSON object. Do not include any "
        "text before or after the JSON.\n\n"
        "Create the following types of flash cards where you best see fit, making "
        "sure to cover all relevant topics and key points. "
        f"Generate at minimum {min_cards} cards.\n"
        "1. Multiple choice questions (type \"multiple_choice\"): exactly one option "
        "has isCorrect true.\n"
        "2. Fill in the blank questions (type \"fill_in_blank\"): the question marks "
        "the blank with ___ and answer holds the missing text.\n"
        "3. Matching pairs (type \"matching\"): at least two pairs.\n\n"
        "Each generated card must be ranked by difficulty from 1-3 where 1 is the "
        "easiest and 3 is the hardest; difficulty must be the integer 1, 2 or 3.\n\n"
        "Use exactly this JSON structure and these keys:\n"
        f"{OUTPUT_SHAPE}\n\n"
        "Content to analyze:\n"
        f"{content}"
    )


def extract_json_object(raw: str) -> str:
    """Return the substring from the first ``{`` to the last ``}`` inclusive."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1:
        logger.error("AI response does not contain a JSON object (structure)")
        logger.debug(f"Raw AI response: {raw!r}")
        raise MalformedAIResponse(MalformedAIResponse.STRUCTURE)
    if end < start:
        # both braces present but reversed: nothing parseable between them
        logger.error("Error parsing AI response (parse): closing brace precedes opening brace")
        logger.debug(f"Raw AI response: {raw!r}")
        raise MalformedAIResponse(MalformedAIResponse.PARSE)
    return raw[start : end + 1]


def _summarize_errors(err: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(e["loc"]), "msg": e["msg"]}
        for e in err.errors(include_url=False)
    ]


def parse_response(raw: str, *, min_cards: int = MIN_CARDS) -> GeneratedDeck:
    """Parse and validate a raw model reply into a :class:`GeneratedDeck`."""
    json_text = extract_json_object(raw)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing AI response (parse): {e}")
        logger.debug(f"Extracted JSON text: {json_text!r}")
        raise MalformedAIResponse(MalformedAIResponse.PARSE) from e

    if not isinstance(data, dict):
        logger.error("AI response JSON is not an object (parse)")
        raise MalformedAIResponse(MalformedAIResponse.PARSE)

    try:
        deck = GeneratedDeck.model_validate(data)
    except ValidationError as e:
        errors = _summarize_errors(e)
        logger.error(f"AI generated invalid flash cards: {errors}")
        raise InvalidGeneratedCard(errors=errors) from e

    if len(deck.flash_cards) < min_cards:
        logger.error(
            f"AI generated {len(deck.flash_cards)} flash cards, expected at least {min_cards}"
        )
        raise InvalidGeneratedCard(
            f"AI generated fewer than {min_cards} flash cards"
        )
    return deck


def _build_google_model(model_name: str, api_key: Optional[str]):
    """Build the Google Gemini model provider (lazy import)."""
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=api_key)
    return GoogleModel(model_name, provider=provider)


class FlashCardGenerator:
    """Builds the prompt, calls the model once, parses its reply.

    ``model`` may be any pydantic-ai model instance; when omitted a Gemini
    model is built from ``api_key``/``model_name`` on first use. No retries.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL_NAME,
        model: Any = None,
        timeout_seconds: Optional[float] = 60.0,
        min_cards: int = MIN_CARDS,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.min_cards = max(MIN_CARDS, int(min_cards))
        self._model = model
        self._agent: Optional[Agent[None, str]] = None

    @classmethod
    def from_settings(cls, gen: GenerationSettings) -> "FlashCardGenerator":
        return cls(
            api_key=gen.gemini_api_key,
            model_name=gen.model_name,
            timeout_seconds=gen.timeout_seconds,
            min_cards=gen.min_cards,
        )

    def _get_agent(self) -> Agent[None, str]:
        if self._agent is None:
            model = self._model or _build_google_model(self.model_name, self.api_key)
            self._agent = Agent[None, str](model=model, output_type=str, retries=0)
        return self._agent

    def build_prompt(self, content: str) -> str:
        return build_prompt(content, min_cards=self.min_cards)

    async def complete(self, prompt: str) -> str:
        """Single request/response call to the model, bounded by the timeout."""
        try:
            agent = self._get_agent()
            res = await asyncio.wait_for(agent.run(prompt), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"Flash card generation timed out after {self.timeout_seconds}s")
            raise GenerationFailed() from e
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error generating flash cards: {e}")
            raise GenerationFailed() from e
        return str(res.output)

    async def generate(self, content: str) -> GeneratedDeck:
        """Generate and validate a deck from extracted document text."""
        raw = await self.complete(self.build_prompt(content))
        return parse_response(raw, min_cards=self.min_cards)
