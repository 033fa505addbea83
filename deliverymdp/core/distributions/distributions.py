from abc import ABC, abstractmethod
from typing import Sequence, TypeVar, Generic, Tuple, Callable
import random
import math

Event = TypeVar('Event')

class Distribution(ABC, Generic[Event]):
    @abstractmethod
    def sample(self, *, rng=random) -> Event:
        pass

class FiniteDistribution(Distribution[Event]):
    @abstractmethod
    def prob(self, e: Event) -> float:
        pass

    @property
    @abstractmethod
    def support(self) -> Sequence[Event]:
        pass

    def __len__(self):
        return len(self.support)

    def sample(self, *, rng=random) -> Event:
        support = self.support
        if not isinstance(support, (list, tuple)):
            support = tuple(support)
        if len(support) == 1:
            return support[0]
        return rng.choices(
            population=support,
            weights=tuple(self.probs),
            k=1
        )[0]

    def items(self) -> Sequence[Tuple[Event, float]]:
        for e in self.support:
            yield e, self.prob(e)

    def values(self) -> Sequence[float]:
        for e in self.support:
            yield self.prob(e)

    @property
    def probs(self) -> Sequence[float]:
        yield from (self.prob(e) for e in self.support)

    @property
    def total_mass(self) -> float:
        return math.fsum(self.probs)

    def __repr__(self):
        e_p = ", ".join([f"{e}: {p}" for e, p in self.items()])
        return f"{self.__class__.__name__}({{{e_p}}})"

    def isclose(
        self, other: "FiniteDistribution[Event]", *,
        # These tolerances are copied from `np.isclose()`
        rtol=1e-05, atol=1e-08,
    ) -> bool:
        isclose_kw = dict(rel_tol=rtol, abs_tol=atol)
        nonzero_support = {
            e
            for dist in [self, other]
            for e, p in dist.items()
            if not math.isclose(p, 0, **isclose_kw)
        }
        for e in nonzero_support:
            if not math.isclose(self.prob(e), other.prob(e), **isclose_kw):
                return False
        return True

    def expectation(self, real_function: Callable[[Event], float] = lambda e: e):
        """
        Return the expected value of real_function under
        the distribution.
        """
        tot = 0
        for e, p in self.items():
            tot += real_function(e)*p
        return tot

    def is_normalized(self, rtol=1e-05, atol=1e-08):
        return math.isclose(self.total_mass, 1, rel_tol=rtol, abs_tol=atol)
