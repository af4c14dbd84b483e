from collections import OrderedDict
from typing import Hashable, Iterable, List


class AliasRelation:
    """
    Equivalence classes of connected variables.

    Every key starts out as its own class; ``add`` merges the classes of its
    two arguments. The resulting partition does not depend on the order in
    which pairs are added.
    """

    def __init__(self):
        self._aliases = {}

    def add(self, a: Hashable, b: Hashable) -> None:
        aliases = self.aliases(a)
        if b in aliases:
            return
        aliases = aliases | self.aliases(b)
        for v in aliases:
            self._aliases[v] = aliases

    def aliases(self, a: Hashable) -> frozenset:
        if a in self._aliases:
            return self._aliases[a]
        else:
            return frozenset((a,))

    def partition(self, keys: Iterable[Hashable]) -> List[List[Hashable]]:
        """
        Group keys by class. Classes are ordered by their first key, and keys
        within a class keep the given order.
        """
        classes = OrderedDict()
        for k in keys:
            classes.setdefault(self.aliases(k), []).append(k)
        return list(classes.values())
