import numpy as np

from deliverymdp.domains.delivery import City, Vehicle, GraphTopology, TabularTaskDistribution, \
    Fleet, DeliveryMDP

A, B, C = City("A"), City("B"), City("C")

def two_cities(
    *,
    task_prob=0.,
    task_reward=0.,
    distance=10,
    cost_per_km=1,
    discount_rate=.9
):
    """
    Two cities joined by a two-way road. A task to the other city is
    offered with probability `task_prob` in either city.
    """
    topology = GraphTopology.symmetric([A, B], [(A, B, distance)])
    task_distribution = TabularTaskDistribution(
        probabilities={
            (A, B): task_prob, (A, None): 1 - task_prob,
            (B, A): task_prob, (B, None): 1 - task_prob,
        },
        rewards={(A, B): task_reward, (B, A): task_reward},
    )
    fleet = Fleet.single(cost_per_km)
    return DeliveryMDP(topology, task_distribution, fleet, discount_rate=discount_rate)

def unprofitable_detour(discount_rate=.9):
    """
    A sits between a cheap neighbor C (1 km) and a remote B (10 km)
    whose only road leads back to A. Tasks A -> B pay less than the
    trip costs.
    """
    topology = GraphTopology.symmetric([A, B, C], [(A, B, 10), (A, C, 1)])
    task_distribution = TabularTaskDistribution(
        probabilities={(A, B): .5},
        rewards={(A, B): 5},
    )
    return DeliveryMDP(topology, task_distribution, Fleet.single(1), discount_rate=discount_rate)

def triangle(discount_rate=.9):
    """
    Three cities 10 km apart. Every ordered pair has a task with
    probability .3, but only tasks from A to B pay anything.
    """
    topology = GraphTopology.symmetric([A, B, C], [(A, B, 10), (B, C, 10), (C, A, 10)])
    task_distribution = TabularTaskDistribution.uniform(
        [A, B, C],
        task_prob=.3,
        rewards={(A, B): 100},
    )
    return DeliveryMDP(topology, task_distribution, Fleet.single(1), discount_rate=discount_rate)

def random_network(
    n_cities=6,
    *,
    seed=0,
    discount_rate=.95,
    reward_scale=1.,
    n_vehicles=2,
):
    """
    Ring of roads with a few random shortcuts, random offer
    probabilities and random task rewards.
    """
    rng = np.random.default_rng(seed)
    cities = [City(f"city-{i}") for i in range(n_cities)]
    edges = [
        (cities[i], cities[(i + 1) % n_cities], float(rng.integers(5, 50)))
        for i in range(n_cities)
    ]
    for _ in range(n_cities//2):
        i, j = rng.choice(n_cities, size=2, replace=False)
        edges.append((cities[i], cities[j], float(rng.integers(5, 50))))
    topology = GraphTopology.symmetric(cities, edges)

    probabilities, rewards = {}, {}
    for src in cities:
        others = [c for c in cities if c != src]
        probs = rng.dirichlet(np.ones(len(others) + 1))
        for dst, p in zip(others + [None], probs):
            probabilities[(src, dst)] = float(p)
        for dst in others:
            rewards[(src, dst)] = reward_scale*float(rng.uniform(0, 100))
    task_distribution = TabularTaskDistribution(probabilities, rewards)

    fleet = Fleet([
        Vehicle(f"vehicle-{i}", reward_scale*float(rng.uniform(.5, 2)))
        for i in range(n_vehicles)
    ])
    return DeliveryMDP(topology, task_distribution, fleet, discount_rate=discount_rate)
