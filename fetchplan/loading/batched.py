"""
Batched loading: parents first, then one ``IN`` query per association.

Parents are paginated on their own (no join), then each association's
children are fetched for all loaded parent keys at once, split into chunks of
at most ``batch_size`` keys. Costs ``1 + A`` queries while the keys fit in a
single chunk, which makes it the strategy of choice for paginated requests.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from ..grouping import GroupedResult
from .base import CollectionLoader, LoadingStrategy

logger = logging.getLogger(__name__)


class BatchedLoader(CollectionLoader):
    strategy = LoadingStrategy.BATCHED

    def load(self, plan) -> List[GroupedResult]:
        results = self.load_parents(plan)
        keys = [result.key for result in results]
        for resolved in plan.associations:
            children = self.load_children(keys, resolved)
            for result in results:
                result.children[resolved.name] = children.get(result.key, [])
        return results

    def load_children(
        self,
        parent_keys: Iterable[Any],
        resolved,
        batch_size: Optional[int] = None,
    ) -> Dict[Any, List[Dict[str, Any]]]:
        """
        Load one association for a set of parent keys.

        Args:
            parent_keys: Keys of already loaded parents; duplicates are ignored
            resolved: The association to load
            batch_size: Keys per query, defaults to ``loading_settings.batch_size``

        Returns:
            Ordered mapping of every requested key to its children (possibly
            empty), keys in first-seen order
        """
        to_python = self.builder.model._meta.pk.to_python
        grouped: "OrderedDict[Any, List[Dict[str, Any]]]" = OrderedDict(
            (to_python(key), []) for key in parent_keys
        )
        if not grouped:
            return grouped

        shape = self.builder.child_shape(resolved)
        descriptions = self.builder.batch_descriptions(resolved, list(grouped), batch_size)
        logger.debug(
            f"Loading {resolved.name} for {len(grouped)} {self.builder.model.__name__} "
            f"keys in {len(descriptions)} batch(es)"
        )
        for description in descriptions:
            for row in self.executor.execute(description):
                grouped[row[resolved.fk_name]].append(shape.extract(row))
        return grouped
