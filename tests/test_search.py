"""Tests for relevance scoring, hard filters, ranking and result limiting."""

import pytest

from mushcode_kb.errors import ValidationError
from mushcode_kb.search import (
    MAX_LIMIT,
    SearchQuery,
    allocate_limit,
    score_content,
    search,
    tokenize,
    validate_query,
)
from tests.conftest import make_example, make_pattern

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class TestScoring:

    def test_tokenize_lowercases_and_splits(self):
        assert tokenize("  Switch\tCONDITIONAL\n") == ["switch", "conditional"]
        assert tokenize("") == []
        assert tokenize("   ") == []

    def test_exact_mode_requires_whole_words(self):
        score, matched = score_content("switch function", ["swit"], fuzzy=False)
        assert score == 0.0
        assert matched == []

    def test_fuzzy_mode_matches_substrings(self):
        score, matched = score_content("switch function", ["swit"], fuzzy=True)
        assert score == 1.0
        assert matched == ["swit"]

    def test_score_is_normalized_by_token_count(self):
        score, matched = score_content("switch function", ["switch", "loop"], fuzzy=False)
        assert score == pytest.approx(0.5)
        assert matched == ["switch"]

    def test_zero_tokens_score_zero(self):
        assert score_content("anything at all", [], fuzzy=True) == (0.0, [])

    def test_more_matching_content_never_lowers_score(self):
        tokens = ["switch", "conditional", "list"]
        base, _ = score_content("switch", tokens)
        more, _ = score_content("switch conditional", tokens)
        most, _ = score_content("switch conditional list", tokens)
        assert base <= more <= most
        assert most == 1.0

    def test_content_is_case_insensitive(self):
        score, _ = score_content("Switch Function", ["switch"])
        assert score == 1.0


# ---------------------------------------------------------------------------
# Search over a store
# ---------------------------------------------------------------------------

class TestSearch:

    def test_end_to_end_switch_conditional(self, populated_store):
        result = search(populated_store, SearchQuery(query="switch conditional",
                                                     fuzzy_match=False))
        assert [m.id for m in result.patterns] == ["switch-function"]
        assert result.patterns[0].relevance == 1.0
        assert result.patterns[0].confidence == 1.0
        assert sorted(result.patterns[0].matched_terms) == ["conditional", "switch"]
        assert result.examples == []
        assert result.total_results == 1

    def test_zero_score_records_are_excluded(self, populated_store):
        result = search(populated_store, SearchQuery(query="nothingmatches"))
        assert result.patterns == []
        assert result.examples == []
        assert result.total_results == 0

    def test_empty_query_matches_nothing(self, populated_store):
        result = search(populated_store, SearchQuery(query="   "))
        assert result.total_results == 0

    def test_ties_keep_insertion_order(self, store):
        for pid in ("c", "a", "b"):
            store.add(make_pattern(pid, name="Loop Helper"))
        result = search(store, SearchQuery(query="loop"))
        assert [m.id for m in result.patterns] == ["c", "a", "b"]

    def test_re_added_record_keeps_tie_position(self, store):
        store.add(make_pattern("a", name="Loop Helper"))
        store.add(make_pattern("b", name="Loop Helper"))
        store.add(make_pattern("a", name="Loop Helper"))
        result = search(store, SearchQuery(query="loop"))
        assert [m.id for m in result.patterns] == ["a", "b"]

    def test_ranked_by_score_descending(self, store):
        store.add(make_pattern("half", name="switch"))
        store.add(make_pattern("full", name="switch conditional"))
        result = search(store, SearchQuery(query="switch conditional"))
        assert [m.id for m in result.patterns] == ["full", "half"]
        assert result.patterns[1].relevance == pytest.approx(0.5)

    def test_hard_filters_exclude_before_scoring(self, store):
        store.add(make_pattern("f", name="loop", category="function"))
        store.add(make_pattern("c", name="loop", category="command"))
        store.add(make_pattern("adv", name="loop", category="function",
                               difficulty="advanced"))
        result = search(store, SearchQuery(query="loop", category="function",
                                           difficulty="beginner"))
        assert [m.id for m in result.patterns] == ["f"]

    def test_server_filter(self, store):
        store.add(make_pattern("penn", name="loop", servers=("PennMUSH",)))
        store.add(make_pattern("mux", name="loop", servers=("TinyMUX",)))
        store.add(make_example("ex", title="loop", servers=("TinyMUX",)))
        result = search(store, SearchQuery(query="loop", server_type="TinyMUX"))
        assert [m.id for m in result.patterns] == ["mux"]
        assert [m.id for m in result.examples] == ["ex"]

    def test_tag_filter_requires_overlap(self, store):
        store.add(make_pattern("tagged", name="loop", tags=("iteration",)))
        store.add(make_pattern("untagged", name="loop"))
        result = search(store, SearchQuery(query="loop", tags=["iteration", "other"]))
        assert [m.id for m in result.patterns] == ["tagged"]

    def test_filter_with_unknown_value_returns_nothing(self, populated_store):
        result = search(populated_store, SearchQuery(query="switch", category="nope"))
        assert result.total_results == 0

    def test_include_flags(self, store):
        store.add(make_pattern("p", name="loop"))
        store.add(make_example("e", title="loop"))
        only_examples = search(store, SearchQuery(query="loop", include_patterns=False))
        assert only_examples.patterns == []
        assert [m.id for m in only_examples.examples] == ["e"]
        assert only_examples.total_results == 1

    def test_index_prefilter_keeps_insertion_order(self, store):
        store.add(make_pattern("x", name="loop", category="function",
                               servers=("PennMUSH", "TinyMUX")))
        store.add(make_pattern("y", name="loop", category="function",
                               servers=("TinyMUX",)))
        store.add(make_pattern("z", name="loop", category="command",
                               servers=("TinyMUX",)))
        result = search(store, SearchQuery(query="loop", category="function",
                                           server_type="TinyMUX"))
        assert [m.id for m in result.patterns] == ["x", "y"]

    def test_response_shape(self, populated_store):
        data = search(populated_store, SearchQuery(query="switch")).to_dict()
        assert set(data) == {"patterns", "examples", "totalResults", "executionTimeMs"}
        assert set(data["patterns"][0]) == {"id", "confidence", "relevance", "matchedTerms"}
        assert isinstance(data["executionTimeMs"], int)


# ---------------------------------------------------------------------------
# Proportional limiting
# ---------------------------------------------------------------------------

class TestLimit:

    def test_allocate_nine_one(self):
        assert allocate_limit(5, 9, 1) == (5, 0)

    def test_allocate_six_four(self):
        assert allocate_limit(5, 6, 4) == (3, 2)

    def test_allocate_under_limit_is_unchanged(self):
        assert allocate_limit(10, 3, 4) == (3, 4)
        assert allocate_limit(None, 30, 40) == (30, 40)

    def test_allocate_only_examples(self):
        assert allocate_limit(5, 0, 8) == (0, 5)

    def test_search_applies_limit_per_list(self, store):
        for i in range(6):
            store.add(make_pattern(f"p{i}", name="loop"))
        for i in range(4):
            store.add(make_example(f"e{i}", title="loop"))
        result = search(store, SearchQuery(query="loop", limit=5))
        assert [m.id for m in result.patterns] == ["p0", "p1", "p2"]
        assert [m.id for m in result.examples] == ["e0", "e1"]
        assert result.total_results == 10

    def test_search_nine_patterns_one_example(self, store):
        for i in range(9):
            store.add(make_pattern(f"p{i}", name="loop"))
        store.add(make_example("e0", title="loop"))
        result = search(store, SearchQuery(query="loop", limit=5))
        assert len(result.patterns) == 5
        assert result.examples == []


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidateQuery:

    def test_full_request(self):
        q = validate_query({
            "query": "switch",
            "category": "function",
            "serverType": "PennMUSH",
            "difficulty": "advanced",
            "tags": ["a", "b"],
            "fuzzyMatch": True,
            "limit": 7,
        })
        assert q == SearchQuery(query="switch", category="function", server_type="PennMUSH",
                                difficulty="advanced", tags=["a", "b"], fuzzy_match=True,
                                limit=7)

    @pytest.mark.parametrize("request_data, field", [
        ({}, "query"),
        ({"query": 42}, "query"),
        ({"query": "x", "limit": 0}, "limit"),
        ({"query": "x", "limit": MAX_LIMIT + 1}, "limit"),
        ({"query": "x", "limit": "5"}, "limit"),
        ({"query": "x", "limit": True}, "limit"),
        ({"query": "x", "difficulty": "expert"}, "difficulty"),
        ({"query": "x", "tags": "switch"}, "tags"),
        ({"query": "x", "tags": [1]}, "tags"),
        ({"query": "x", "fuzzyMatch": "yes"}, "fuzzyMatch"),
        ({"query": "x", "category": 3}, "category"),
    ])
    def test_rejects_malformed_fields(self, request_data, field):
        with pytest.raises(ValidationError) as exc:
            validate_query(request_data)
        assert exc.value.field == field

    def test_rejects_non_mapping(self):
        with pytest.raises(ValidationError):
            validate_query(["query"])

    def test_rejects_overlong_query(self):
        with pytest.raises(ValidationError):
            validate_query({"query": "x" * 11}, max_input_length=10)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_query({"query": None})


class TestCacheKey:

    def test_normalizes_whitespace_and_case(self):
        a = SearchQuery(query="  Switch   Conditional ")
        b = SearchQuery(query="switch conditional")
        assert a.cache_key() == b.cache_key()

    def test_tag_order_does_not_matter(self):
        a = SearchQuery(query="x", tags=["b", "a"])
        b = SearchQuery(query="x", tags=["a", "b"])
        assert a.cache_key() == b.cache_key()

    def test_filters_change_key(self):
        assert SearchQuery(query="x").cache_key() != \
            SearchQuery(query="x", fuzzy_match=True).cache_key()
        assert SearchQuery(query="x").cache_key() != \
            SearchQuery(query="x", limit=3).cache_key()
