"""
Shared fixtures: a small shop with members, teams, orders and order items.
"""

import pytest
from django.utils import timezone

from test_app.models import Delivery, Item, Member, Order, OrderItem, Payment, Team


def _create_order(member, city, lines, payments=()):
    delivery = Delivery.objects.create(city=city, street="1", zipcode="1111")
    order = Order.objects.create(member=member, delivery=delivery, order_date=timezone.now())
    for item, count in lines:
        OrderItem.objects.create(order=order, item=item, order_price=item.price, count=count)
    for amount in payments:
        Payment.objects.create(order=order, amount=amount)
    return order


@pytest.fixture
def teams(db):
    team_a = Team.objects.create(name="teamA")
    team_b = Team.objects.create(name="teamB")
    Team.objects.create(name="teamC")
    return team_a, team_b


@pytest.fixture
def members(teams):
    team_a, team_b = teams
    return [
        Member.objects.create(username="member1", age=10, team=team_a),
        Member.objects.create(username="member2", age=20, team=team_a),
        Member.objects.create(username="member3", age=30, team=team_b),
        Member.objects.create(username="member4", age=40, team=team_b),
    ]


@pytest.fixture
def shop(db):
    """userA and userB each order two books; userC's order has no items."""
    books = {
        name: Item.objects.create(name=name, price=price, stock_quantity=100)
        for name, price in [
            ("JPA1 BOOK", 10000),
            ("JPA2 BOOK", 20000),
            ("SPRING1 BOOK", 20000),
            ("SPRING2 BOOK", 40000),
        ]
    }
    user_a = Member.objects.create(username="userA", age=30)
    user_b = Member.objects.create(username="userB", age=40)
    user_c = Member.objects.create(username="userC", age=50)

    order_a = _create_order(
        user_a, "Seoul", [(books["JPA1 BOOK"], 1), (books["JPA2 BOOK"], 2)], payments=[50000]
    )
    order_b = _create_order(
        user_b,
        "Busan",
        [(books["SPRING1 BOOK"], 3), (books["SPRING2 BOOK"], 4)],
        payments=[100000, 120000],
    )
    order_c = _create_order(user_c, "Jeju", [])
    return {"items": books, "orders": [order_a, order_b, order_c]}
