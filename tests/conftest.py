"""Shared pytest fixtures for the study-docs test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.db.base import Base
from app.core.db.schemas import User  # noqa: F401  (registers all tables)
from app.modules.documents.extractor import TextExtractor
from app.modules.documents.generator import FlashCardGenerator
from app.modules.documents.main import DocumentIngestor


# ---------------------------------------------------------------------------
# Card payloads
# ---------------------------------------------------------------------------


def mc_card(correct: int = 1, difficulty: int = 2) -> dict[str, Any]:
    options = [
        {"text": f"Option {i}", "isCorrect": i < correct} for i in range(4)
    ]
    return {
        "type": "multiple_choice",
        "question": "Which option is right?",
        "multipleChoice": {"options": options},
        "difficulty": difficulty,
    }


def fib_card(difficulty: int = 1) -> dict[str, Any]:
    return {
        "type": "fill_in_blank",
        "question": "Water boils at ___ degrees Celsius.",
        "answer": "100",
        "difficulty": difficulty,
    }


def matching_card(pairs: int = 3, difficulty: int = 3) -> dict[str, Any]:
    return {
        "type": "matching",
        "matching": {
            "pairs": [
                {"question": f"Term {i}", "answer": f"Definition {i}"}
                for i in range(pairs)
            ]
        },
        "difficulty": difficulty,
    }


def deck(cards: list[dict[str, Any]], summary: str = "A short summary.") -> dict[str, Any]:
    return {"summary": summary, "flashCards": cards}


def valid_cards() -> list[dict[str, Any]]:
    return [mc_card(), fib_card(), matching_card(), mc_card(difficulty=3), fib_card(2)]


@pytest.fixture
def valid_deck() -> dict[str, Any]:
    return deck(valid_cards())


# ---------------------------------------------------------------------------
# AI model stubs
# ---------------------------------------------------------------------------


def reply_model(text: str) -> FunctionModel:
    """A pydantic-ai model that always answers with ``text``."""

    def _fn(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        return ModelResponse(parts=[TextPart(text)])

    return FunctionModel(_fn)


def failing_model(exc: Exception) -> FunctionModel:
    def _fn(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise exc

    return FunctionModel(_fn)


@pytest.fixture
def make_generator() -> Callable[..., FlashCardGenerator]:
    def _make(reply: str | dict[str, Any], **kwargs: Any) -> FlashCardGenerator:
        text = reply if isinstance(reply, str) else json.dumps(reply)
        return FlashCardGenerator(model=reply_model(text), **kwargs)

    return _make


@pytest.fixture
def make_ingestor(make_generator) -> Callable[..., DocumentIngestor]:
    def _make(reply: str | dict[str, Any]) -> DocumentIngestor:
        return DocumentIngestor(extractor=TextExtractor(), generator=make_generator(reply))

    return _make


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_maker(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def session(session_maker) -> AsyncIterator[AsyncSession]:
    async with session_maker() as s:
        yield s


async def _add_user(session_maker, email: str) -> User:
    async with session_maker() as s:
        user = User(email=email, hashed_password="not-a-real-hash", username=email.split("@")[0])
        s.add(user)
        await s.commit()
        return user


@pytest.fixture
async def user(session_maker) -> User:
    return await _add_user(session_maker, "ada@example.com")


@pytest.fixture
async def other_user(session_maker) -> User:
    return await _add_user(session_maker, "grace@example.com")
