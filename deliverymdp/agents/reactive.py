import logging
from collections import namedtuple
from typing import Mapping, Optional, Union

from deliverymdp.agents.config import PlannerConfig
from deliverymdp.algorithms.valueiteration import ValueIteration, ValueIterationResult
from deliverymdp.core.exceptions import PolicyIncomplete
from deliverymdp.domains.delivery.mdp import DeliveryMDP, State
from deliverymdp.domains.delivery.world import City, Fleet, Task, TaskDistribution, Topology

logger = logging.getLogger(__name__)

Move = namedtuple("Move", "city")
Deliver = namedtuple("Deliver", "task")

class ReactiveAgent:
    """
    Plans once, offline, with value iteration over the delivery MDP
    and afterwards answers each decision tick by looking up the policy.

    After `setup`, the agent's state is never modified, so `decide`
    can be called from any number of threads.
    """
    def __init__(self, initial_value="zero", seed=None, _version="vectorized"):
        self._planner_kwargs = dict(initial_value=initial_value, seed=seed, _version=_version)
        self.config = None
        self.mdp = None
        self.planning_result = None
        self.policy = None
        self.city_value = None

    def setup(
        self,
        topology : Topology,
        task_distribution : TaskDistribution,
        fleet : Fleet,
        config : Union[PlannerConfig, Mapping, None] = None,
    ) -> ValueIterationResult:
        if self.planning_result is not None:
            raise RuntimeError("setup() may only be called once per agent")
        if config is None:
            config = PlannerConfig()
        elif not isinstance(config, PlannerConfig):
            config = PlannerConfig.from_properties(config)
        if not isinstance(fleet, Fleet):
            fleet = Fleet(fleet.vehicles())

        mdp = DeliveryMDP(
            topology=topology,
            task_distribution=task_distribution,
            fleet=fleet,
            discount_rate=config.discount_factor,
        )
        planner = ValueIteration(
            max_iterations=config.max_iterations,
            max_residual=config.epsilon_stop,
            **self._planner_kwargs
        )
        result = planner.plan_on(mdp)

        self.config = config
        self.mdp = mdp
        self.policy = result.policy
        self.city_value = mdp.city_value(result.state_value)
        self.planning_result = result
        return result

    def decide(self, current_city : City, task : Optional[Task] = None):
        if self.policy is None:
            raise PolicyIncomplete("Agent has no policy; call setup() first")
        destination = task.destination if task is not None else None
        action = self.policy[State(current_city, destination)]
        logger.debug(f"In {current_city} offered {task}: {action}")
        if action.delivering:
            return Deliver(task)
        return Move(action.move_to)
