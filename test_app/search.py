"""
Search declarations for the shop test models.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import django_filters

from fetchplan.grouping import GroupedResult
from fetchplan.queries import Association, Projection
from fetchplan.repository import SearchRepository

from .models import Member, Order, Team


class MemberSearchFilterSet(django_filters.FilterSet):
    username = django_filters.CharFilter(field_name="username")
    team_name = django_filters.CharFilter(field_name="team__name")
    age_goe = django_filters.NumberFilter(field_name="age", lookup_expr="gte")
    age_loe = django_filters.NumberFilter(field_name="age", lookup_expr="lte")

    class Meta:
        model = Member
        fields = []


class OrderSearchFilterSet(django_filters.FilterSet):
    member_name = django_filters.CharFilter(field_name="member__username", lookup_expr="icontains")
    status = django_filters.ChoiceFilter(choices=Order.Status.choices)

    class Meta:
        model = Order
        fields = []


@dataclass
class MemberTeamDto:
    member_id: int
    username: str
    age: int
    team_id: Optional[int]
    team_name: Optional[str]

    @classmethod
    def from_grouped(cls, result: GroupedResult) -> "MemberTeamDto":
        return cls(**result.fields)


@dataclass
class OrderItemQueryDto:
    order_item_id: int
    item_name: str
    order_price: int
    count: int


@dataclass
class OrderQueryDto:
    order_id: int
    name: str
    status: str
    city: str
    order_items: List[OrderItemQueryDto] = field(default_factory=list)

    @classmethod
    def from_grouped(cls, result: GroupedResult) -> "OrderQueryDto":
        return cls(
            **result.fields,
            order_items=[
                OrderItemQueryDto(**child) for child in result.children.get("order_items", [])
            ],
        )


MEMBER_TEAM_PROJECTION = Projection(
    key="member_id",
    fields={
        "member_id": "id",
        "username": "username",
        "age": "age",
        "team_id": "team__id",
        "team_name": "team__name",
    },
)

ORDER_PROJECTION = Projection(
    key="order_id",
    fields={
        "order_id": "id",
        "name": "member__username",
        "status": "status",
        "city": "delivery__city",
    },
)

ORDER_ITEMS = Association(
    "order_items",
    Projection(
        key="order_item_id",
        fields={
            "order_item_id": "id",
            "item_name": "item__name",
            "order_price": "order_price",
            "count": "count",
        },
    ),
    order_by=("order_item_id",),
)

PAYMENTS = Association(
    "payments",
    Projection(key="payment_id", fields={"payment_id": "id", "amount": "amount"}),
)

TEAM_MEMBERS = Association(
    "members",
    Projection(key="member_id", fields={"member_id": "id", "username": "username"}),
    order_by=("username",),
)


def member_repository(**kwargs) -> SearchRepository[MemberTeamDto]:
    return SearchRepository(
        Member,
        MEMBER_TEAM_PROJECTION,
        filterset_class=MemberSearchFilterSet,
        decoder=MemberTeamDto.from_grouped,
        **kwargs,
    )


def order_repository(**kwargs) -> SearchRepository[OrderQueryDto]:
    return SearchRepository(
        Order,
        ORDER_PROJECTION,
        filterset_class=OrderSearchFilterSet,
        associations=[ORDER_ITEMS],
        decoder=OrderQueryDto.from_grouped,
        **kwargs,
    )


def order_payment_repository(**kwargs) -> SearchRepository[GroupedResult]:
    return SearchRepository(Order, ORDER_PROJECTION, associations=[ORDER_ITEMS, PAYMENTS], **kwargs)


def team_repository(**kwargs) -> SearchRepository[GroupedResult]:
    return SearchRepository(
        Team,
        Projection(key="team_id", fields={"team_id": "id", "name": "name"}),
        associations=[TEAM_MEMBERS],
        **kwargs,
    )
