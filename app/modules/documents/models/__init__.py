from .flashcards import (
    FillInBlankCard,
    FlashCardPayload,
    GeneratedDeck,
    Matching,
    MatchingCard,
    MultipleChoice,
    MultipleChoiceCard,
    Option,
    Pair,
    card_columns,
    card_payload,
    flash_card_adapter,
)

__all__ = [
    "FillInBlankCard",
    "FlashCardPayload",
    "GeneratedDeck",
    "Matching",
    "MatchingCard",
    "MultipleChoice",
    "MultipleChoiceCard",
    "Option",
    "Pair",
    "card_columns",
    "card_payload",
    "flash_card_adapter",
]
