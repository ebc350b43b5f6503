"""
django-fetchplan.

Composes optional search criteria into Django ORM predicates, plans paginated
queries with count-query elision, and loads one-to-many collections through
interchangeable strategies that regroup flat join rows into nested results.
"""

__version__ = "0.1.0"
