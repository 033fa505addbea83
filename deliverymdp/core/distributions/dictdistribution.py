from deliverymdp.core.distributions.distributions import FiniteDistribution
import random


class DeterministicDistribution(FiniteDistribution):
    def __init__(self, value):
        self.value = value
    @property
    def support(self):
        return (self.value,)
    def prob(self, e):
        if e == self.value:
            return 1
        return 0
    def sample(self, *, rng=random):
        return self.value
    def items(self):
        yield self.value, 1

class DictDistribution(dict,FiniteDistribution):
    """
    A finite distribution stored as a plain `{event: probability}` dict.
    Insertion order is the order of `support`, which keeps sampling
    reproducible for a seeded `rng`.
    """
    @classmethod
    def deterministic(cls, element):
        return DeterministicDistribution(element)

    @classmethod
    def uniform(cls, support):
        support = tuple(support)
        return DictDistribution({e: 1/len(support) for e in support})

    @property
    def support(self):
        return self.keys()

    def prob(self, e):
        return self.get(e, 0.0)

    items = dict.items
    values = dict.values
    __repr__ = FiniteDistribution.__repr__
