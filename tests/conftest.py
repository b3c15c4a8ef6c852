"""Shared pytest fixtures for the sales coach tests.

Services are assembled with the real wiring (build_services) around the
in-memory fakes from fakes.py; the API client overrides the container
dependency so no test talks to OpenAI or Supabase.
"""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeDatabase, FakeDocumentStore, FakeEmbedding, FakeLLM
from sales_coach.config import Settings
from sales_coach.dependencies import build_services, get_container


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def embedding():
    return FakeEmbedding()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def settings():
    return Settings(openai_api_key="test", supabase_url="https://db.test", supabase_key="test")


@pytest.fixture
def container(settings, database, document_store, embedding, llm):
    return build_services(settings, database=database, documents=document_store, embedding=embedding, llm=llm)


@pytest.fixture
def client(container):
    """TestClient whose routes use the fake-backed container.

    Unexpected exceptions are answered with the 500 envelope instead of
    being re-raised into the test.
    """
    from sales_coach.main import app

    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
