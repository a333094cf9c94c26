"""Pydantic models for flash-card variants.

Each card type is its own model and the three are joined in a discriminated
union on ``type``, so a payload that violates its type's invariants cannot be
constructed at all. The same models validate AI output and CRUD request
bodies. Field names follow the JSON shape the AI is asked to produce
(``multipleChoice``, ``isCorrect``, ``flashCards``).
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

BLANK_MARKER = re.compile(r"_{3,}|\[blank\]", re.IGNORECASE)

Difficulty = Literal[1, 2, 3]
NonEmptyStr = Annotated[str, Field(min_length=1)]


class _CardBase(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    difficulty: Difficulty = 1


class Option(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    text: NonEmptyStr
    is_correct: bool = Field(alias="isCorrect")


class MultipleChoice(BaseModel):
    options: list[Option] = Field(default_factory=list)

    @field_validator("options")
    @classmethod
    def _exactly_one_correct(cls, options: list[Option]) -> list[Option]:
        if len(options) < 2:
            raise ValueError("Multiple choice cards must have at least two options")
        correct = sum(1 for o in options if o.is_correct)
        if correct != 1:
            raise ValueError(
                "Multiple choice cards must have exactly one correct answer"
            )
        return options


class Pair(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    question: NonEmptyStr
    answer: NonEmptyStr


class Matching(BaseModel):
    pairs: list[Pair] = Field(default_factory=list)

    @field_validator("pairs")
    @classmethod
    def _at_least_two_pairs(cls, pairs: list[Pair]) -> list[Pair]:
        if len(pairs) < 2:
            raise ValueError("Matching cards must have at least two pairs")
        return pairs


class MultipleChoiceCard(_CardBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    question: NonEmptyStr
    multiple_choice: MultipleChoice = Field(alias="multipleChoice")


class FillInBlankCard(_CardBase):
    type: Literal["fill_in_blank"] = "fill_in_blank"
    question: NonEmptyStr
    answer: NonEmptyStr

    @model_validator(mode="after")
    def _has_blank(self) -> "FillInBlankCard":
        if not BLANK_MARKER.search(self.question):
            raise ValueError("Fill in the blank questions must contain a blank (___)")
        return self


class MatchingCard(_CardBase):
    type: Literal["matching"] = "matching"
    question: Optional[str] = None
    matching: Matching


FlashCardPayload = Annotated[
    Union[MultipleChoiceCard, FillInBlankCard, MatchingCard],
    Field(discriminator="type"),
]

flash_card_adapter: TypeAdapter[FlashCardPayload] = TypeAdapter(FlashCardPayload)


class GeneratedDeck(BaseModel):
    """Summary plus cards, as returned by the generator."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    summary: NonEmptyStr
    flash_cards: list[FlashCardPayload] = Field(alias="flashCards")


def card_columns(card: FlashCardPayload) -> dict:
    """Flatten a validated card into FlashCard column values."""
    columns: dict = {
        "difficulty": card.difficulty,
        "question": card.question,
        "answer": None,
        "options": None,
        "pairs": None,
    }
    if isinstance(card, MultipleChoiceCard):
        columns["options"] = [
            {"text": o.text, "isCorrect": o.is_correct}
            for o in card.multiple_choice.options
        ]
    elif isinstance(card, FillInBlankCard):
        columns["answer"] = card.answer
    else:
        columns["pairs"] = [
            {"question": p.question, "answer": p.answer} for p in card.matching.pairs
        ]
    return columns


def card_payload(
    card_type: str,
    *,
    difficulty: int,
    question: Optional[str],
    answer: Optional[str],
    options: Optional[list],
    pairs: Optional[list],
) -> dict:
    """Rebuild the JSON card shape from stored columns."""
    payload: dict = {"type": card_type, "difficulty": difficulty}
    if question is not None:
        payload["question"] = question
    if card_type == "multiple_choice":
        payload["multipleChoice"] = {"options": list(options or [])}
    elif card_type == "fill_in_blank":
        payload["answer"] = answer
    elif card_type == "matching":
        payload["matching"] = {"pairs": list(pairs or [])}
    return payload
