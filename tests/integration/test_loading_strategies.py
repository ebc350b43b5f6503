"""
Integration tests for the collection loading strategies.

All four strategies must return the same grouped results; they only differ
in query cost and in the plans they accept.
"""

import django_filters
import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from fetchplan.core.exceptions import AssociationError, UnsupportedStrategyCombination
from fetchplan.loading import LoadingStrategy
from fetchplan.pagination import PageRequest
from fetchplan.repository import SearchRepository
from test_app.models import Member, Order, OrderItem, Team
from test_app.search import (
    ORDER_ITEMS,
    ORDER_PROJECTION,
    OrderItemQueryDto,
    order_payment_repository,
    order_repository,
    team_repository,
)

pytestmark = [pytest.mark.integration, pytest.mark.django_db]

ALL_STRATEGIES = list(LoadingStrategy)


@pytest.fixture
def orders(shop):
    return order_repository(default_sort=["order_id"])


@pytest.mark.parametrize("strategy", ALL_STRATEGIES)
def test_strategies_return_identical_results(orders, strategy):
    baseline = orders.search(strategy=LoadingStrategy.NAIVE)

    assert orders.search(strategy=strategy) == baseline
    assert [order.name for order in baseline] == ["userA", "userB", "userC"]
    assert [item.item_name for item in baseline[0].order_items] == ["JPA1 BOOK", "JPA2 BOOK"]
    assert baseline[1].order_items[1] == OrderItemQueryDto(
        order_item_id=baseline[1].order_items[1].order_item_id,
        item_name="SPRING2 BOOK",
        order_price=40000,
        count=4,
    )
    assert baseline[2].order_items == []


@pytest.mark.parametrize(
    "strategy,expected_queries",
    [
        (LoadingStrategy.NAIVE, 1 + 3),
        (LoadingStrategy.EAGER_JOIN, 1),
        (LoadingStrategy.BATCHED, 2),
        (LoadingStrategy.FLAT, 1),
    ],
)
def test_strategy_query_counts(orders, strategy, expected_queries, django_assert_num_queries):
    with django_assert_num_queries(expected_queries):
        orders.search(strategy=strategy)


def test_naive_loading_warns(orders, caplog):
    orders.search(strategy="naive")

    assert "Naive loading of Order will issue 4 queries" in caplog.text


def test_strategy_from_settings(orders, settings, django_assert_num_queries):
    settings.FETCHPLAN = {"loading_settings": {"default_strategy": "eager_join"}}

    with django_assert_num_queries(1):
        results = orders.search()

    assert len(results) == 3


def test_criteria_apply_to_joined_strategies(orders):
    for strategy in ALL_STRATEGIES:
        results = orders.search({"member_name": "usera"}, strategy=strategy)
        assert [order.name for order in results] == ["userA"]
        assert len(results[0].order_items) == 2


def test_two_associations_flat_matches_batched(shop, django_assert_num_queries):
    repository = order_payment_repository(default_sort=["order_id"])

    with django_assert_num_queries(1):
        flat = repository.search(strategy=LoadingStrategy.FLAT)
    with django_assert_num_queries(3):
        batched = repository.search(strategy=LoadingStrategy.BATCHED)

    assert flat == batched
    assert [len(result.children["order_items"]) for result in flat] == [2, 2, 0]
    assert [len(result.children["payments"]) for result in flat] == [1, 2, 0]


def test_eager_join_rejects_two_associations(shop, django_assert_num_queries):
    repository = order_payment_repository()

    with django_assert_num_queries(0):
        with pytest.raises(UnsupportedStrategyCombination):
            repository.search(strategy=LoadingStrategy.EAGER_JOIN)


@pytest.mark.parametrize("strategy", [LoadingStrategy.EAGER_JOIN, LoadingStrategy.FLAT])
def test_join_strategies_reject_pagination(orders, strategy, django_assert_num_queries):
    with django_assert_num_queries(0):
        with pytest.raises(UnsupportedStrategyCombination):
            orders.search_page({}, PageRequest(0, 1), strategy=strategy)


def test_join_strategies_fetch_one_without_pagination(orders):
    for strategy in ALL_STRATEGIES:
        order = orders.fetch_one({"member_name": "userB"}, strategy=strategy)
        assert len(order.order_items) == 2


@pytest.mark.parametrize("strategy", [LoadingStrategy.NAIVE, LoadingStrategy.BATCHED])
def test_paginated_collection_loading(orders, strategy):
    page = orders.search_page({}, PageRequest(0, 2), strategy=strategy)

    assert [order.name for order in page] == ["userA", "userB"]
    assert [len(order.order_items) for order in page] == [2, 2]
    assert page.total == 3


def test_batched_paginated_query_count(orders, django_assert_num_queries):
    # parents, children, count
    with django_assert_num_queries(3):
        orders.search_page({}, PageRequest(0, 2))
    # parents, children
    with django_assert_num_queries(2):
        orders.search_page({}, PageRequest(2, 2))


def test_team_members_left_join(shop, members):
    repository = team_repository(default_sort=["team_id"])

    for strategy in ALL_STRATEGIES:
        teams = repository.search(strategy=strategy)
        assert [team["name"] for team in teams] == ["teamA", "teamB", "teamC"]
        assert [
            [member["username"] for member in team.children["members"]] for team in teams
        ] == [["member1", "member2"], ["member3", "member4"], []]


def test_group_flat_rows_matches_joined_query(orders):
    rows = list(
        Order.objects.order_by("id", "order_items__id").values(
            "id",
            "member__username",
            "status",
            "delivery__city",
            "order_items__id",
            "order_items__item__name",
            "order_items__order_price",
            "order_items__count",
        )
    )

    grouped = orders.group_flat_rows(rows)

    assert len(rows) == 5
    assert [len(result.children["order_items"]) for result in grouped] == [2, 2, 0]
    assert [orders.decoder(result) for result in grouped] == orders.search()


class TestBatchedLoading:
    @pytest.fixture
    def many_orders(self, shop):
        member = Member.objects.get(username="userA")
        item = shop["items"]["JPA1 BOOK"]
        Order.objects.bulk_create(
            [Order(member=member, order_date=timezone.now()) for _ in range(150)]
        )
        created = Order.objects.filter(delivery__isnull=True)
        OrderItem.objects.bulk_create(
            [OrderItem(order=order, item=item, order_price=item.price, count=1) for order in created]
        )
        return list(Order.objects.order_by("id").values_list("id", flat=True))

    def test_load_children_splits_keys_into_batches(self, many_orders, django_assert_num_queries):
        repository = order_repository()
        keys = many_orders[3:]
        assert len(keys) == 150

        with django_assert_num_queries(2):
            batched = repository.load_children(keys, "order_items", batch_size=100)
        with django_assert_num_queries(1):
            single = repository.load_children(keys, "order_items", batch_size=1000)

        assert batched == single
        assert list(batched) == keys
        assert all(len(children) == 1 for children in batched.values())

    def test_batch_size_from_settings(self, many_orders, settings, django_assert_num_queries):
        settings.FETCHPLAN = {"loading_settings": {"batch_size": 50}}
        repository = order_repository(default_sort=["order_id"])

        with django_assert_num_queries(1 + 4):
            results = repository.search(strategy=LoadingStrategy.BATCHED)

        assert len(results) == 153
        assert results == repository.search(strategy=LoadingStrategy.FLAT)

    def test_duplicate_keys_are_loaded_once(self, many_orders, django_assert_num_queries):
        repository = order_repository()
        keys = many_orders[:2] * 3

        with django_assert_num_queries(1):
            children = repository.load_children(keys, "order_items")

        assert list(children) == many_orders[:2]


def test_load_children_for_no_keys_runs_no_query(orders, django_assert_num_queries):
    with django_assert_num_queries(0):
        assert orders.load_children([], "order_items") == {}


def test_load_children_rejects_unknown_association(orders):
    with pytest.raises(AssociationError):
        orders.load_children([1], "payments")


def test_flat_rows_regroup_into_parents_with_and_without_children(db):
    teams = [Team.objects.create(name=name) for name in ("A", "B", "C", "D")]
    Member.objects.create(username="a1", team=teams[0])
    Member.objects.create(username="a2", team=teams[0])
    repository = team_repository(default_sort=["team_id"])

    results = repository.search(strategy=LoadingStrategy.FLAT)

    assert repository.monitor.last("search").row_count == 5
    assert [result["name"] for result in results] == ["A", "B", "C", "D"]
    assert [len(result.children["members"]) for result in results] == [2, 0, 0, 0]


def test_unknown_strategy_is_rejected(orders, django_assert_num_queries):
    with django_assert_num_queries(0):
        with pytest.raises(UnsupportedStrategyCombination) as excinfo:
            orders.search(strategy="lazy")

    assert excinfo.value.strategy == "lazy"
    assert excinfo.value.associations == ["order_items"]


def test_filter_across_order_items_is_rejected_before_any_query(shop, django_assert_num_queries):
    class OrderItemNameFilterSet(django_filters.FilterSet):
        item_name = django_filters.CharFilter(
            field_name="order_items__item__name", lookup_expr="icontains"
        )

        class Meta:
            model = Order
            fields = []

    with django_assert_num_queries(0):
        with pytest.raises(ImproperlyConfigured):
            SearchRepository(
                Order,
                ORDER_PROJECTION,
                filterset_class=OrderItemNameFilterSet,
                associations=[ORDER_ITEMS],
            )
