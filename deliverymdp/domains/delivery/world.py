"""
Adapters for the world the delivery agent lives in: the road network,
the distribution of task offers, and the agent's fleet of vehicles.

The abstract classes are what the planner consumes; the concrete ones
are simple in-memory implementations used by tests and the simulation
harness.
"""
import logging
import math
import random
from abc import ABC, abstractmethod
from collections import namedtuple
from typing import Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse.csgraph import csgraph_from_dense, shortest_path

from deliverymdp.core.distributions import DictDistribution
from deliverymdp.core.exceptions import ConfigurationError, TopologyError
from deliverymdp.core.utils.funcutils import cached_property

logger = logging.getLogger(__name__)

City = namedtuple("City", "name")
Task = namedtuple("Task", "source destination reward")
Vehicle = namedtuple("Vehicle", "name cost_per_km")

class Topology(ABC):
    @abstractmethod
    def cities(self) -> Sequence[City]:
        pass

    @abstractmethod
    def neighbors(self, city: City) -> Sequence[City]:
        """Cities reachable from `city` over a single outgoing road."""
        pass

    @abstractmethod
    def distance(self, x: City, y: City) -> float:
        pass

class TaskDistribution(ABC):
    @abstractmethod
    def prob(self, from_city: City, to_city: Optional[City]) -> float:
        """
        Probability that the next offer in `from_city` is a task to
        `to_city`; `to_city=None` is the probability of no offer.
        """
        pass

    @abstractmethod
    def reward(self, from_city: City, to_city: City) -> float:
        pass

    def offer_dist(self, city : City, cities : Sequence[City]) -> DictDistribution:
        """Distribution over the destination of the next offer in `city` (`None` for no task)."""
        dist = DictDistribution({
            dst: self.prob(city, dst) for dst in cities if dst != city
        })
        dist[None] = self.prob(city, None)
        return dist

    def sample_task(self, city : City, cities : Sequence[City], rng=random) -> Optional[Task]:
        dist = DictDistribution({
            d: p for d, p in self.offer_dist(city, cities).items() if p > 0
        })
        if len(dist) == 0:
            raise ConfigurationError(f"Offer probabilities in {city} are all zero, including no task")
        destination = dist.sample(rng=rng)
        if destination is None:
            return None
        return Task(source=city, destination=destination, reward=self.reward(city, destination))

class GraphTopology(Topology):
    """
    Directed road network. `distance(x, y)` is the length of the
    shortest route from `x` to `y`, not only of a direct road.
    """
    def __init__(
        self,
        cities : Iterable[City],
        edges : Iterable[Tuple[City, City, float]],
    ):
        self._cities = tuple(cities)
        if len(set(self._cities)) != len(self._cities):
            raise TopologyError(f"Duplicate cities in {self._cities}")
        self._city_index = {c: i for i, c in enumerate(self._cities)}
        self._neighbors = {c: [] for c in self._cities}
        self._road_lengths = {}
        for src, dst, km in edges:
            if src not in self._city_index or dst not in self._city_index:
                raise TopologyError(f"Road {src} -> {dst} connects an unknown city")
            if km < 0:
                raise TopologyError(f"Road {src} -> {dst} has negative length {km}")
            if (src, dst) not in self._road_lengths:
                self._neighbors[src].append(dst)
                self._road_lengths[(src, dst)] = km
            else:
                self._road_lengths[(src, dst)] = min(km, self._road_lengths[(src, dst)])

    @classmethod
    def symmetric(cls, cities, edges) -> "GraphTopology":
        two_way = []
        for src, dst, km in edges:
            two_way.append((src, dst, km))
            two_way.append((dst, src, km))
        return cls(cities, two_way)

    def cities(self) -> Sequence[City]:
        return self._cities

    def neighbors(self, city: City) -> Sequence[City]:
        try:
            return tuple(self._neighbors[city])
        except KeyError:
            raise TopologyError(f"{city} is not in the topology") from None

    def road_length(self, x: City, y: City) -> float:
        return self._road_lengths[(x, y)]

    @cached_property
    def _distance_matrix(self) -> np.ndarray:
        n = len(self._cities)
        adjacency = np.full((n, n), np.inf)
        for (src, dst), km in self._road_lengths.items():
            adjacency[self._city_index[src], self._city_index[dst]] = km
        # inf marks a missing road so zero-length roads survive as edges
        graph = csgraph_from_dense(adjacency, null_value=np.inf)
        distances = shortest_path(graph, method="auto", directed=True)
        if np.isinf(distances).any():
            logger.warning(f"{int(np.isinf(distances).sum())} ordered city pairs have no route between them")
        distances.setflags(write=False)
        return distances

    def distance(self, x: City, y: City) -> float:
        try:
            xi, yi = self._city_index[x], self._city_index[y]
        except KeyError:
            raise TopologyError(f"{x} or {y} is not in the topology") from None
        return float(self._distance_matrix[xi, yi])

    def __repr__(self):
        return f"{self.__class__.__name__}(cities={len(self._cities)}, roads={len(self._road_lengths)})"

class TabularTaskDistribution(TaskDistribution):
    """
    Task offers given by explicit `(from, to)` tables. Missing
    entries are zero, except the no-task probability of a city, which
    defaults to whatever mass the tasks from that city leave over.
    """
    def __init__(
        self,
        probabilities : Mapping[Tuple[City, Optional[City]], float],
        rewards : Mapping[Tuple[City, City], float] = None,
    ):
        self._probabilities = dict(probabilities)
        self._rewards = dict(rewards) if rewards is not None else {}
        for (src, dst), p in self._probabilities.items():
            if not (0 <= p <= 1):
                raise ConfigurationError(f"Probability of task {src} -> {dst} is {p}, outside [0, 1]")
        for (src, dst), r in self._rewards.items():
            if r < 0:
                raise ConfigurationError(f"Reward of task {src} -> {dst} is negative ({r})")

    def prob(self, from_city, to_city):
        if to_city is None and (from_city, None) not in self._probabilities:
            offered = math.fsum(
                p for (src, dst), p in self._probabilities.items()
                if src == from_city and dst is not None
            )
            return max(0., 1. - offered)
        return self._probabilities.get((from_city, to_city), 0.)

    def reward(self, from_city, to_city):
        return self._rewards.get((from_city, to_city), 0.)

    @classmethod
    def uniform(cls, cities, task_prob, rewards=None) -> "TabularTaskDistribution":
        """
        Every ordered pair of distinct cities gets the same offer probability.
        """
        cities = tuple(cities)
        return cls(
            probabilities={
                (src, dst): task_prob
                for src in cities for dst in cities if src != dst
            },
            rewards=rewards
        )

class Fleet:
    def __init__(self, vehicles : Iterable[Vehicle]):
        self._vehicles = tuple(vehicles)
        if len(self._vehicles) == 0:
            raise ConfigurationError("The agent's fleet must contain at least one vehicle")
        for v in self._vehicles:
            if v.cost_per_km < 0:
                raise ConfigurationError(f"Vehicle {v.name} has negative cost per km ({v.cost_per_km})")

    @classmethod
    def single(cls, cost_per_km, name="vehicle-0") -> "Fleet":
        return cls([Vehicle(name=name, cost_per_km=cost_per_km)])

    def vehicles(self) -> Sequence[Vehicle]:
        return self._vehicles

    @property
    def average_cost_per_km(self) -> float:
        return sum(v.cost_per_km for v in self._vehicles)/len(self._vehicles)

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self._vehicles)})"
