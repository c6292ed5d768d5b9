"""Shared test fixtures and configuration."""

import asyncio
import os
from typing import List, Optional

import pytest

from creative_studio.core.base_service import GenerationService
from creative_studio.core.exceptions import ServiceError
from creative_studio.core.models import GenerationRequest, GenerationResult
from creative_studio.utils.persistence import MemoryStorage, PersistenceStore

# 1x1 transparent PNG
SAMPLE_PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FakeService(GenerationService):
    """In-memory generation service recording every request.

    Attributes:
        requests: Requests received, in call order
        fail_on: Call indices that raise ServiceError
        delays: Per-call sleep in seconds, used to shuffle completion order
    """

    def __init__(
        self,
        fail_on: Optional[dict] = None,
        delays: Optional[List[float]] = None,
        echo_prompt: Optional[str] = None
    ):
        self.requests: List[GenerationRequest] = []
        self.fail_on = fail_on or {}
        self.delays = delays or []
        self.echo_prompt = echo_prompt

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        index = len(self.requests)
        self.requests.append(request)

        if index < len(self.delays):
            await asyncio.sleep(self.delays[index])

        if index in self.fail_on:
            raise ServiceError(self.fail_on[index], status_code=500)

        return GenerationResult(
            image=f"https://images.example/{index}.png",
            prompt=self.echo_prompt or request.prompt,
            settings={"call": index, **request.to_payload()},
            timestamp=1700000000000 + index,
        )

    @property
    def name(self) -> str:
        return "Fake"


@pytest.fixture
def sample_prompt():
    """Return a sample prompt for testing."""
    return "a red fox in snow"


@pytest.fixture
def sample_request(sample_prompt):
    """Return a GenerationRequest with default parameters."""
    return GenerationRequest(prompt=sample_prompt)


@pytest.fixture
def sample_result(sample_prompt):
    """Return a sample GenerationResult."""
    return GenerationResult(
        image=SAMPLE_PNG_DATA_URL,
        prompt=sample_prompt,
        settings={"steps": 20, "seed": 1234},
        timestamp=1700000000000,
    )


@pytest.fixture
def memory_storage():
    """Return an empty in-memory key-value storage."""
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    """Return a PersistenceStore over in-memory storage."""
    return PersistenceStore(memory_storage)


@pytest.fixture
def fake_service():
    """Return a FakeService that always succeeds."""
    return FakeService()


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
