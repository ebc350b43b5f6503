"""
Integration tests for criteria search, count elision and single-result fetches.
"""

import pytest

from fetchplan.core.exceptions import (
    AmbiguousSingleResult,
    InvalidCriteria,
    InvalidPaginationRequest,
    UnsupportedOrdering,
)
from fetchplan.filters import Criteria
from fetchplan.pagination import PageRequest
from test_app.search import MemberTeamDto, member_repository

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


@pytest.fixture
def repository(members):
    return member_repository(default_sort=["member_id"])


def _names(records):
    return [record.username for record in records]


def test_search_without_criteria_returns_everything(repository):
    assert _names(repository.search()) == ["member1", "member2", "member3", "member4"]


def test_search_by_team_and_age(repository):
    records = repository.search({"team_name": "teamB", "age_goe": 35})

    assert records == [
        MemberTeamDto(
            member_id=records[0].member_id,
            username="member4",
            age=40,
            team_id=records[0].team_id,
            team_name="teamB",
        )
    ]


def test_blank_criteria_impose_no_constraint(repository):
    records = repository.search({"username": "  ", "team_name": "", "age_loe": None})

    assert len(records) == 4


def test_age_range(repository):
    assert _names(repository.search(Criteria(age_goe=20, age_loe=30))) == ["member2", "member3"]


def test_invalid_raw_criteria_are_rejected(repository, django_assert_num_queries):
    with django_assert_num_queries(0):
        with pytest.raises(InvalidCriteria):
            repository.search({"age_goe": "forty"})


def test_search_sort(repository):
    assert _names(repository.search(sort="-age")) == ["member4", "member3", "member2", "member1"]
    assert _names(repository.search(sort=["-team_name", "age"])) == [
        "member3",
        "member4",
        "member1",
        "member2",
    ]


def test_sort_across_to_many_relation_is_rejected(repository, django_assert_num_queries):
    with django_assert_num_queries(0):
        with pytest.raises(UnsupportedOrdering):
            repository.search(sort="orders__id")


def test_short_first_page_skips_count_query(repository, django_assert_num_queries):
    with django_assert_num_queries(1):
        page = repository.search_page({}, PageRequest(0, 10))

    assert page.total == 4
    assert page.is_last


def test_full_page_runs_count_query(repository, django_assert_num_queries):
    with django_assert_num_queries(2):
        page = repository.search_page({}, PageRequest(0, 2))

    assert _names(page.content) == ["member1", "member2"]
    assert page.total == 4
    assert page.total_pages == 2
    assert page.has_next


def test_short_later_page_infers_total(repository, django_assert_num_queries):
    with django_assert_num_queries(1):
        page = repository.search_page({}, PageRequest(3, 3))

    assert _names(page.content) == ["member4"]
    assert page.total == 4


def test_empty_page_past_the_end_counts(repository, django_assert_num_queries):
    with django_assert_num_queries(2):
        page = repository.search_page({}, PageRequest(40, 10))

    assert page.content == []
    assert page.total == 4


def test_always_count(repository, django_assert_num_queries):
    with django_assert_num_queries(2):
        page = repository.search_page({"team_name": "teamA"}, PageRequest(0, 10), always_count=True)

    assert page.total == 2


def test_page_request_uses_default_page_size(repository, settings):
    settings.FETCHPLAN = {"pagination_settings": {"default_page_size": 3}}

    page = repository.search_page({}, repository.page_request(2))

    assert _names(page.content) == ["member4"]
    assert page.page_number == 2


def test_oversized_page_is_rejected(repository, settings, django_assert_num_queries):
    settings.FETCHPLAN = {"pagination_settings": {"default_page_size": 2, "max_page_size": 3}}

    with django_assert_num_queries(0):
        with pytest.raises(InvalidPaginationRequest):
            repository.search_page({}, PageRequest(0, 4))


def test_search_slice_fetches_one_extra_row(repository, django_assert_num_queries):
    with django_assert_num_queries(1):
        first = repository.search_slice({}, PageRequest(0, 3))

    assert _names(first.content) == ["member1", "member2", "member3"]
    assert first.has_next

    last = repository.search_slice({}, PageRequest(3, 3))
    assert _names(last.content) == ["member4"]
    assert not last.has_next


def test_search_slice_at_maximum_page_size(repository, settings):
    settings.FETCHPLAN = {"pagination_settings": {"default_page_size": 2, "max_page_size": 2}}

    page = repository.search_slice({}, PageRequest(0, 2))

    assert len(page) == 2
    assert page.has_next


def test_fetch_one(repository):
    assert repository.fetch_one({"username": "member3"}).age == 30
    assert repository.fetch_one({"username": "nobody"}) is None


def test_fetch_one_with_several_matches_raises(repository):
    with pytest.raises(AmbiguousSingleResult) as excinfo:
        repository.fetch_one({"team_name": "teamA"})

    assert len(excinfo.value.keys) == 2
    assert excinfo.value.model_name == "Member"


def test_fetch_first_follows_sort(repository):
    assert repository.fetch_first({"team_name": "teamB"}, sort="-age").username == "member4"
    assert repository.fetch_first({"username": "nobody"}) is None


def test_count(repository, django_assert_num_queries):
    with django_assert_num_queries(1):
        assert repository.count({"age_goe": 20}) == 3

    assert repository.count() == 4


def test_monitor_records_operation_cost(repository):
    repository.search_page({}, PageRequest(0, 2))

    metrics = repository.monitor.last("search_page")
    assert metrics.query_count == 2
    assert metrics.row_count == 2
    assert metrics.strategy == "batched"
