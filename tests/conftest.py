"""Root-level test conftest — fixtures shared across all test files.

Every store, cache and service is created per test and torn down after it,
so no in-memory state (cache entries, sweeper threads) leaks between tests.
"""
import pytest

from mushcode_kb.models import Example, LearningPath, LearningStep, Pattern, SecurityRule


def make_pattern(pid, name="Pattern", description="", category="function",
                 difficulty="beginner", servers=("PennMUSH",), tags=()):
    return Pattern(
        id=pid,
        name=name,
        description=description,
        category=category,
        difficulty=difficulty,
        server_compatibility=list(servers),
        tags=list(tags),
    )


def make_example(eid, title="Example", description="", category="building",
                 difficulty="beginner", servers=("PennMUSH",), tags=()):
    return Example(
        id=eid,
        title=title,
        description=description,
        category=category,
        difficulty=difficulty,
        server_compatibility=list(servers),
        tags=list(tags),
    )


@pytest.fixture
def store():
    from mushcode_kb.store import KnowledgeStore
    return KnowledgeStore()


@pytest.fixture
def populated_store(store):
    """One switch pattern, one object-creation example, plus supporting records."""
    store.add(make_pattern(
        "switch-function",
        name="Switch Function",
        description="Branch on a value",
        category="function",
        servers=("PennMUSH", "TinyMUX"),
        tags=("switch", "conditional"),
    ))
    store.add(make_example(
        "basic-object-creation",
        title="Basic Object Creation",
        description="Create a thing and describe it",
        category="building",
        tags=("create", "object"),
    ))
    store.add(SecurityRule(
        id="unescaped-input",
        name="Unescaped User Input",
        description="Evaluating %0 directly allows injection",
        severity="high",
        category="injection",
        affected_servers=["PennMUSH"],
    ))
    store.add(LearningPath(
        id="building-basics",
        name="Building Basics",
        description="First objects and rooms",
        steps=[LearningStep(step_number=1, title="Create an object",
                            example_ids=["basic-object-creation"])],
    ))
    return store


@pytest.fixture
def cache():
    from mushcode_kb.cache import LRUCache
    c = LRUCache(max_size=100, name="test")
    yield c
    c.destroy()


@pytest.fixture
def service(populated_store):
    from mushcode_kb.cache import LRUCache
    from mushcode_kb.service import KnowledgeService
    svc = KnowledgeService(populated_store, cache=LRUCache(max_size=50, name="search"))
    yield svc
    svc.close()
