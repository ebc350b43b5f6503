"""
Collection loading strategies.

    - naive: one query per parent and association (baseline)
    - eager_join: single join over one association, regrouped in memory
    - batched: parent page plus one IN query per association and chunk
    - flat: single join over every association, regrouped in memory
"""

from typing import Dict, Type, Union

from .base import CollectionLoader, LoadingStrategy
from .batched import BatchedLoader
from .eager_join import EagerJoinLoader
from .flat import FlatLoader
from .naive import NaiveLoader

LOADERS: Dict[LoadingStrategy, Type[CollectionLoader]] = {
    LoadingStrategy.NAIVE: NaiveLoader,
    LoadingStrategy.EAGER_JOIN: EagerJoinLoader,
    LoadingStrategy.BATCHED: BatchedLoader,
    LoadingStrategy.FLAT: FlatLoader,
}


def get_loader_class(strategy: Union[LoadingStrategy, str]) -> Type[CollectionLoader]:
    """Return the loader implementing ``strategy``."""
    return LOADERS[LoadingStrategy(strategy)]


__all__ = [
    "LOADERS",
    "BatchedLoader",
    "CollectionLoader",
    "EagerJoinLoader",
    "FlatLoader",
    "LoadingStrategy",
    "NaiveLoader",
    "get_loader_class",
]
