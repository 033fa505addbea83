import logging
import math
from collections import namedtuple
from typing import Sequence

import numpy as np
from frozendict import frozendict

from deliverymdp.core.distributions import DictDistribution
from deliverymdp.core.exceptions import TopologyError
from deliverymdp.core.mdp import TabularMarkovDecisionProcess, StateTable
from deliverymdp.core.utils.funcutils import cached_property
from deliverymdp.domains.delivery.world import City, Topology, TaskDistribution, Fleet

logger = logging.getLogger(__name__)

State = namedtuple("State", "city destination")
Action = namedtuple("Action", "move_to delivering")

TRANSITION_MASS_TOLERANCE = 1e-6

def enumerate_states(topology : Topology) -> Sequence[State]:
    """
    One state per ordered pair of distinct cities (an offer from the
    first to the second) plus one no-offer state per city.
    """
    states = []
    cities = topology.cities()
    for city in cities:
        for destination in cities:
            if destination != city:
                states.append(State(city, destination))
        states.append(State(city, None))
    return states

def possible_actions(topology : Topology, s : State) -> Sequence[Action]:
    """
    Moves to each neighbor, then delivery of the offered task. A task
    whose destination no route leads to cannot be delivered.
    """
    actions = [Action(n, False) for n in topology.neighbors(s.city)]
    if s.destination is not None and \
            not math.isinf(topology.distance(s.city, s.destination)):
        actions.append(Action(s.destination, True))
    return tuple(actions)

class TransitionKernel:
    """
    Successor distributions keyed by landing city. Where the agent
    ends up after an action, and which offer it sees there, depends
    only on `action.move_to`, so moving to and delivering to the same
    city share one distribution.
    """
    def __init__(self, topology : Topology, task_distribution : TaskDistribution):
        cities = topology.cities()
        kernel = {}
        for city in cities:
            dist = DictDistribution()
            for destination in cities:
                if destination != city:
                    dist[State(city, destination)] = task_distribution.prob(city, destination)
            dist[State(city, None)] = task_distribution.prob(city, None)
            mass = dist.total_mass
            if abs(mass - 1) > TRANSITION_MASS_TOLERANCE:
                logger.warning(f"Offer probabilities in {city} sum to {mass}, not 1")
            kernel[city] = dist
        self._kernel = frozendict(kernel)

    def get_transition(self, a : Action) -> DictDistribution:
        try:
            return self._kernel[a.move_to]
        except KeyError:
            raise TopologyError(f"Action {a} moves to {a.move_to}, which is not in the topology") from None

    def __getitem__(self, city : City) -> DictDistribution:
        return self._kernel[city]

    def __len__(self):
        return len(self._kernel)

    def __iter__(self):
        yield from self._kernel

class RewardFunction:
    """
    Expected immediate profit of an action: the fleet's average travel
    cost to `move_to`, plus the task's reward when delivering it.
    """
    def __init__(self, topology : Topology, task_distribution : TaskDistribution, fleet : Fleet):
        self.topology = topology
        self.task_distribution = task_distribution
        self.fleet = fleet

    def average_cost(self, x : City, y : City) -> float:
        return self.topology.distance(x, y)*self.fleet.average_cost_per_km

    def __call__(self, s : State, a : Action) -> float:
        r = -self.average_cost(s.city, a.move_to)
        if a.delivering:
            r += self.task_distribution.reward(s.city, a.move_to)
        return r

class DeliveryMDP(TabularMarkovDecisionProcess):
    """
    Pickup-and-delivery MDP on a road network.

    At each decision point the agent is in a city and either has a
    single task offered to it or none. It can deliver the offered task
    (moving to its destination) or move to a neighboring city without
    a task. Either way it pays for the distance travelled, and it is
    paid the task's reward on delivery.

    Parameters
    ---------
    :topology:           Cities, their outgoing roads and pairwise distances.
    :task_distribution:  Probability and reward of offers between cities.
    :fleet:              Vehicles whose mean cost per km prices travel.
    :discount_rate:
    """
    def __init__(
        self,
        topology : Topology,
        task_distribution : TaskDistribution,
        fleet : Fleet,
        discount_rate=.95,
    ):
        self.topology = topology
        self.task_distribution = task_distribution
        self.fleet = fleet
        self.discount_rate = discount_rate

        states = enumerate_states(topology)
        state_actions = {}
        for s in states:
            actions = possible_actions(topology, s)
            if len(actions) == 0:
                raise TopologyError(f"{s.city} has no outgoing roads, so no action is possible in {s}")
            state_actions[s] = actions
        self._state_list = states
        self._state_actions = frozendict(state_actions)
        self.transition_kernel = TransitionKernel(topology, task_distribution)
        self.reward_function = RewardFunction(topology, task_distribution, fleet)
        logger.info(
            f"Built delivery MDP with {len(states)} states over {len(topology.cities())} cities"
        )

    def actions(self, s : State) -> Sequence[Action]:
        return self._state_actions[s]

    def next_state_dist(self, s : State, a : Action) -> DictDistribution:
        return self.transition_kernel.get_transition(a)

    def reward(self, s : State, a : Action) -> float:
        return self.reward_function(s, a)

    def initial_state_dist(self):
        return DictDistribution.uniform([State(c, None) for c in self.topology.cities()])

    def is_absorbing(self, s : State) -> bool:
        return False

    @cached_property
    def action_transition_matrix(self) -> np.ndarray:
        """
        `(A, S)` matrix of successor probabilities. Rows depend only on
        the action, so this stands in for the `(S, A, S)` transition matrix.
        """
        tf = np.zeros((len(self.action_list), len(self.state_list)))
        for ai, a in enumerate(self.action_list):
            for ns, p in self.next_state_dist(None, a).items():
                tf[ai, self.state_list.index(ns)] = p
        tf.setflags(write=False)
        return tf

    def expected_next_state_values(self, state_values : np.ndarray) -> np.ndarray:
        next_values = self.action_transition_matrix @ state_values
        return np.broadcast_to(next_values, (len(self.state_list), len(self.action_list)))

    def city_value(self, state_value) -> StateTable:
        """
        Expected value of arriving in each city before its offer is
        revealed, `sum_d prob(city, d) * state_value[(city, d)]`.
        """
        cities = self.topology.cities()
        return StateTable.from_state_list(cities, [
            math.fsum(
                p*state_value[ns]
                for ns, p in self.transition_kernel[c].items()
            )
            for c in cities
        ])
