"""
A minimal stand-in for the host simulator: it offers tasks, asks an
agent what to do, moves the vehicle and keeps the books.
"""
import logging
import random

from deliverymdp.core.exceptions import TopologyError
from deliverymdp.core.mdp import SimulationResult, Step
from deliverymdp.domains.delivery.world import City, Fleet, TaskDistribution, Topology

logger = logging.getLogger(__name__)

class DeliverySimulation:
    def __init__(
        self,
        topology : Topology,
        task_distribution : TaskDistribution,
        fleet : Fleet,
    ):
        self.topology = topology
        self.task_distribution = task_distribution
        self.fleet = fleet

    def run(self, agent, initial_city : City, n_steps : int, rng=random) -> SimulationResult:
        """
        Runs `n_steps` decision ticks with the fleet's first vehicle.
        Each step records the profit of that tick as its `reward`.
        """
        vehicle = self.fleet.vehicles()[0]
        cities = self.topology.cities()
        city = initial_city
        total_profit = 0.
        steps = []
        for t in range(n_steps):
            task = self.task_distribution.sample_task(city, cities, rng=rng)
            action = agent.decide(city, task)
            if hasattr(action, "task"):
                if action.task != task:
                    raise ValueError(f"Agent delivered {action.task}, but {task} was offered")
                next_city = task.destination
                payout = task.reward
            else:
                next_city = action.city
                if next_city not in self.topology.neighbors(city):
                    raise TopologyError(f"Agent moved from {city} to {next_city}, which is not a neighbor")
                payout = 0.
            cost = self.topology.distance(city, next_city)*vehicle.cost_per_km
            profit = payout - cost
            total_profit += profit
            steps.append(Step(
                timestep=t,
                city=city,
                task=task,
                action=action,
                next_city=next_city,
                cost=cost,
                reward=profit,
            ))
            logger.info(
                f"The total profit after {t + 1} actions is {total_profit} " + \
                f"(average profit: {total_profit/(t + 1)})"
            )
            city = next_city
        return SimulationResult(steps)
