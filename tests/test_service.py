"""Tests for KnowledgeService: cached search, example retrieval, stats."""

import pytest

from mushcode_kb.errors import ValidationError
from mushcode_kb.service import KnowledgeService
from tests.conftest import make_example, make_pattern


class TestCachedSearch:

    def test_repeat_query_is_served_from_cache(self, service):
        first = service.search({"query": "switch"})
        second = service.search({"query": "switch"})
        assert second.to_dict() == first.to_dict()
        stats = service.cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1

    def test_mutating_a_result_does_not_corrupt_the_cache(self, service):
        first = service.search({"query": "switch conditional"})
        first.patterns[0].matched_terms.append("bogus")
        first.patterns.clear()
        first.total_results = 99

        second = service.search({"query": "switch conditional"})
        assert [m.id for m in second.patterns] == ["switch-function"]
        assert sorted(second.patterns[0].matched_terms) == ["conditional", "switch"]
        assert second.total_results == 1
        assert service.cache.stats().hits == 1

        second.patterns.clear()
        third = service.search({"query": "switch conditional"})
        assert [m.id for m in third.patterns] == ["switch-function"]

    def test_cold_and_warm_results_match(self, populated_store):
        from mushcode_kb.cache import LRUCache
        uncached = KnowledgeService(populated_store)
        cached = KnowledgeService(populated_store, cache=LRUCache(max_size=10))
        try:
            cold = uncached.search({"query": "switch conditional"})
            cached.search({"query": "switch conditional"})
            warm = cached.search({"query": "switch conditional"})
            assert [m.to_dict() for m in warm.patterns] == \
                [m.to_dict() for m in cold.patterns]
            assert warm.total_results == cold.total_results
        finally:
            cached.close()

    def test_normalized_queries_share_an_entry(self, service):
        service.search({"query": "Switch  Conditional"})
        service.search({"query": "switch conditional"})
        assert service.cache.stats().hits == 1
        assert len(service.cache) == 1

    def test_store_mutation_is_never_served_stale(self, service):
        before = service.search({"query": "loop"})
        assert before.total_results == 0

        service.store.add(make_pattern("loop-pattern", name="Loop"))
        after = service.search({"query": "loop"})
        assert [m.id for m in after.patterns] == ["loop-pattern"]

    def test_validation_happens_before_cache(self, service):
        with pytest.raises(ValidationError) as exc:
            service.search({"query": 5})
        assert exc.value.field == "query"
        assert service.cache.stats().total_requests == 0

    def test_max_input_length(self, populated_store):
        svc = KnowledgeService(populated_store, max_input_length=5)
        with pytest.raises(ValidationError):
            svc.search({"query": "switch conditional"})

    def test_cache_ttl_is_applied(self, populated_store):
        from mushcode_kb.cache import LRUCache
        cache = LRUCache(max_size=10)
        svc = KnowledgeService(populated_store, cache=cache, cache_ttl=60)
        try:
            svc.search({"query": "switch"})
            assert cache.expiring_entries(within=61) != []
        finally:
            svc.close()

    def test_without_cache(self, populated_store):
        svc = KnowledgeService(populated_store)
        result = svc.search({"query": "switch"})
        assert [m.id for m in result.patterns] == ["switch-function"]
        assert svc.stats()["cache"] is None
        svc.close()


class TestGetExamples:

    def test_finds_examples_with_stored_learning_path(self, service):
        payload = service.get_examples("object")
        assert [e.id for e, _ in payload["examples"]] == ["basic-object-creation"]
        assert payload["examples"][0][1] == 1.0
        assert payload["total_found"] == 1
        assert payload["query"] == "object"
        steps = payload["learning_path"]
        assert [s["title"] for s in steps] == ["Create an object"]
        assert steps[0]["example_ids"] == ["basic-object-creation"]

    def test_generates_learning_path_by_difficulty(self, store):
        store.add(make_example("a1", title="Attribute basics", difficulty="beginner"))
        store.add(make_example("a2", title="Attribute locks", difficulty="advanced"))
        store.add(make_example("a3", title="More attribute basics", difficulty="beginner"))
        svc = KnowledgeService(store)
        payload = svc.get_examples("attribute")
        steps = payload["learning_path"]
        assert [s["step_number"] for s in steps] == [1, 2]
        assert steps[0]["title"] == "Introduction to attribute"
        assert steps[0]["example_ids"] == ["a1", "a3"]
        assert steps[1]["title"] == "Advanced attribute"
        assert steps[1]["example_ids"] == ["a2"]

    def test_step_holds_at_most_three_examples(self, store):
        for i in range(5):
            store.add(make_example(f"e{i}", title="Loop example"))
        payload = KnowledgeService(store).get_examples("loop")
        assert len(payload["examples"]) == 5
        assert payload["learning_path"][0]["example_ids"] == ["e0", "e1", "e2"]

    def test_fuzzy_matching_is_used(self, service):
        payload = service.get_examples("creat")
        assert [e.id for e, _ in payload["examples"]] == ["basic-object-creation"]

    def test_patterns_are_not_returned(self, service):
        payload = service.get_examples("switch")
        assert payload["examples"] == []
        assert payload["total_found"] == 0

    def test_learning_path_can_be_skipped(self, service):
        payload = service.get_examples("object", include_learning_path=False)
        assert payload["learning_path"] == []

    def test_filters_applied(self, service):
        payload = service.get_examples("object", difficulty="advanced", max_results=3)
        assert payload["examples"] == []
        assert payload["filters_applied"] == ["difficulty: advanced", "max_results: 3"]

    @pytest.mark.parametrize("kwargs, field", [
        ({"topic": ""}, "topic"),
        ({"topic": "   "}, "topic"),
        ({"topic": 7}, "topic"),
        ({"topic": "x" * 201}, "topic"),
        ({"topic": "x", "max_results": 0}, "max_results"),
        ({"topic": "x", "max_results": 101}, "max_results"),
        ({"topic": "x", "max_results": True}, "max_results"),
        ({"topic": "x", "difficulty": "expert"}, "difficulty"),
    ])
    def test_rejects_bad_input(self, service, kwargs, field):
        with pytest.raises(ValidationError) as exc:
            service.get_examples(**kwargs)
        assert exc.value.field == field


class TestStats:

    def test_stats_report_store_and_cache(self, service):
        service.search({"query": "switch"})
        stats = service.stats()
        assert stats["knowledge"]["patterns"] == 1
        assert stats["cache"]["misses"] == 1
        assert stats["cache"]["size"] == 1

    def test_close_empties_cache(self, service):
        service.search({"query": "switch"})
        service.close()
        assert len(service.cache) == 0
