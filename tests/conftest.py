"""Common test fixtures for the MemoSpace MCP server."""

import pytest

from memospace_mcp.config import config
from memospace_mcp.models.db_models import init_db
from memospace_mcp.observability import metrics
from memospace_mcp.services.category_service import CategoryService
from memospace_mcp.services.link_service import LinkService
from memospace_mcp.services.note_service import NoteService
from memospace_mcp.services.title_service import TitleService
from memospace_mcp.storage import (
    CategoryRepository,
    JsonFileStore,
    LinkRepository,
    NoteRepository,
    SqliteBlobStore,
    UIStateRepository,
)
from tests.fakes import FakeTitleGenerator, InMemoryBlobStore


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point config at a temporary directory (auto-restored after the test)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "data_dir", tmp_path / "data")
    monkeypatch.setattr(config, "database_path", tmp_path / "data" / "memospace.db")
    monkeypatch.setattr(config, "storage_backend", "json")
    monkeypatch.setattr(config, "openrouter_api_key", None)
    yield config


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
def data_dir(test_config):
    return test_config.get_data_dir()


@pytest.fixture
def json_store(data_dir):
    return JsonFileStore(data_dir)


@pytest.fixture
def sqlite_store(test_config):
    engine = init_db(test_config.get_db_url())
    yield SqliteBlobStore(engine)
    engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryBlobStore()


@pytest.fixture
def title_generator():
    return FakeTitleGenerator()


@pytest.fixture
def note_repository(json_store):
    return NoteRepository(json_store)


@pytest.fixture
def category_repository(json_store):
    return CategoryRepository(json_store)


@pytest.fixture
def link_repository(json_store):
    return LinkRepository(json_store)


@pytest.fixture
def ui_state_repository(json_store):
    return UIStateRepository(json_store)


@pytest.fixture
def category_service(category_repository, note_repository):
    return CategoryService(category_repository, note_repository)


@pytest.fixture
def note_service(note_repository, category_service, title_generator):
    return NoteService(
        note_repository,
        category_service,
        titles=TitleService(title_generator),
        default_category="General",
    )


@pytest.fixture
def link_service(link_repository, note_repository):
    return LinkService(link_repository, note_repository)


@pytest.fixture
def category_tree(category_service):
    """A small tree: A, A/B, A/B/C and X."""
    a = category_service.create("A")
    b = category_service.create("B", ["A"])
    c = category_service.create("C", ["A", "B"])
    x = category_service.create("X")
    return {"A": a, "B": b, "C": c, "X": x}
