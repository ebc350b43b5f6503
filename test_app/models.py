from django.db import models


class Team(models.Model):
    name = models.CharField(max_length=100)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "teams"


class Member(models.Model):
    username = models.CharField(max_length=100)
    age = models.PositiveIntegerField(default=0)
    team = models.ForeignKey(
        Team, on_delete=models.SET_NULL, null=True, blank=True, related_name="members"
    )

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "members"


class Item(models.Model):
    name = models.CharField(max_length=120)
    price = models.PositiveIntegerField(default=0)
    stock_quantity = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "items"


class Delivery(models.Model):
    class Status(models.TextChoices):
        READY = "READY", "Ready"
        COMP = "COMP", "Complete"

    city = models.CharField(max_length=100, blank=True)
    street = models.CharField(max_length=100, blank=True)
    zipcode = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.READY)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "deliveries"


class Order(models.Model):
    class Status(models.TextChoices):
        ORDER = "ORDER", "Ordered"
        CANCEL = "CANCEL", "Cancelled"

    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="orders")
    delivery = models.OneToOneField(
        Delivery, on_delete=models.SET_NULL, null=True, blank=True, related_name="order"
    )
    order_date = models.DateTimeField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ORDER)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "orders"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="order_items")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="order_items")
    order_price = models.PositiveIntegerField()
    count = models.PositiveIntegerField(default=1)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "order items"


class Payment(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="payments")
    amount = models.PositiveIntegerField()
    method = models.CharField(max_length=20, default="card")

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "payments"


class Review(models.Model):
    member = models.ForeignKey(Member, on_delete=models.CASCADE)
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name="reviews")
    rating = models.PositiveSmallIntegerField(default=5)

    class Meta:
        app_label = "test_app"
        verbose_name_plural = "reviews"
