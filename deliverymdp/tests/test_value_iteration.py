import warnings

import numpy as np
import pytest

from deliverymdp.algorithms import ValueIteration
from deliverymdp.core.exceptions import ConfigurationError, NumericError, ConvergenceWarning
from deliverymdp.domains.delivery import DeliveryMDP, State, Action
from deliverymdp.tests.domains import A, B, C, two_cities, unprofitable_detour, triangle, random_network

TIGHT = dict(max_residual=1e-9)

def bellman_backup(mdp, state_value):
    backup = {}
    for s in mdp.state_list:
        backup[s] = max(
            mdp.reward(s, a) + mdp.discount_rate*sum(
                p*state_value[ns] for ns, p in mdp.next_state_dist(s, a).items()
            )
            for a in mdp.actions(s)
        )
    return backup

def test_two_cities_without_tasks():
    mdp = two_cities(task_prob=0.)
    res = ValueIteration(**TIGHT).plan_on(mdp)
    assert res.converged
    assert np.isclose(res.state_value[State(A, None)], -100)
    assert np.isclose(res.state_value[State(B, None)], -100)
    assert res.policy[State(A, None)] == Action(B, False)
    assert res.policy[State(B, None)] == Action(A, False)
    assert mdp.reachable_states() == {State(A, None), State(B, None)}

def test_two_cities_with_guaranteed_tasks():
    mdp = two_cities(task_prob=1., task_reward=50)
    res = ValueIteration(**TIGHT).plan_on(mdp)
    assert np.isclose(res.state_value[State(A, B)], 400)
    assert np.isclose(res.state_value[State(B, A)], 400)
    assert np.isclose(res.state_value[State(A, None)], -10 + .9*400)
    assert res.policy[State(A, B)] == Action(B, True)
    assert res.policy[State(B, A)] == Action(A, True)

def test_task_worth_less_than_travel_is_refused():
    mdp = unprofitable_detour(discount_rate=.9)
    res = ValueIteration(**TIGHT).plan_on(mdp)
    assert res.policy[State(A, B)] == Action(C, False)
    assert res.policy[State(A, None)] == Action(C, False)
    assert res.policy[State(C, None)] == Action(A, False)
    assert np.isclose(res.state_value[State(A, B)], -10)
    assert np.isclose(res.state_value[State(A, None)], -10)
    q = res.action_value[State(A, B)]
    assert q[Action(B, True)] < q[Action(C, False)]

def test_triangle_routes_towards_profitable_origin():
    mdp = triangle(discount_rate=.9)
    res = ValueIteration(**TIGHT).plan_on(mdp)
    assert res.policy[State(A, B)] == Action(B, True)
    assert res.policy[State(B, None)] == Action(A, False)
    assert res.policy[State(C, None)] == Action(A, False)
    assert res.policy[State(B, C)] == Action(A, False)
    assert res.policy[State(C, B)] == Action(A, False)

    arrival_a = 11/.19
    arrival_b = -10 + .9*arrival_a
    city_value = mdp.city_value(res.state_value)
    assert np.isclose(city_value[A], arrival_a)
    assert np.isclose(city_value[B], arrival_b)
    assert np.isclose(city_value[C], arrival_b)
    assert np.isclose(res.state_value[State(A, B)], 90 + .9*arrival_b)

def test_no_discounting_of_the_future_is_myopic():
    mdp = two_cities(task_prob=1., task_reward=50, discount_rate=0.)
    res = ValueIteration().plan_on(mdp)
    assert np.isclose(res.state_value[State(A, B)], 40)
    assert np.isclose(res.state_value[State(A, None)], -10)
    assert res.policy[State(A, B)] == Action(B, True)

    mdp = random_network(seed=3, discount_rate=0.)
    res = ValueIteration().plan_on(mdp)
    for s in mdp.state_list:
        rewards = [mdp.reward(s, a) for a in mdp.actions(s)]
        assert mdp.reward(s, res.policy[s]) == max(rewards)
        assert np.isclose(res.state_value[s], max(rewards))

def test_convergence_within_500_iterations():
    for mdp in [triangle(discount_rate=.95), random_network(seed=1, discount_rate=.95)]:
        res = ValueIteration(max_iterations=500, max_residual=1e-3).plan_on(mdp)
        assert res.converged
        assert res.iterations <= 500
        assert res.residual <= 1e-3

@pytest.mark.parametrize("version", ["dict", "vectorized"])
def test_fixed_point_and_greedy_policy(version):
    mdp = random_network(seed=0)
    vi = ValueIteration(max_residual=1e-4, _version=version)
    res = vi.plan_on(mdp)
    backup = bellman_backup(mdp, res.state_value)
    assert max(abs(res.state_value[s] - backup[s]) for s in mdp.state_list) <= vi.max_residual

    for s in mdp.state_list:
        q = {
            a: mdp.reward(s, a) + mdp.discount_rate*sum(
                p*res.state_value[ns] for ns, p in mdp.next_state_dist(s, a).items()
            )
            for a in mdp.actions(s)
        }
        assert q[res.policy[s]] >= max(q.values()) - 2*vi.max_residual

def test_dict_and_vectorized_versions_agree():
    for mdp in [triangle(), random_network(seed=2)]:
        dict_res = ValueIteration(_version="dict", **TIGHT).plan_on(mdp)
        vec_res = ValueIteration(_version="vectorized", **TIGHT).plan_on(mdp)
        assert dict_res.iterations == vec_res.iterations
        assert dict_res.state_value.equivalent_to(vec_res.state_value)
        assert dict_res.policy == vec_res.policy

def test_reward_scaling_scales_values():
    base = ValueIteration(**TIGHT).plan_on(random_network(seed=4))
    scaled = ValueIteration(**TIGHT).plan_on(random_network(seed=4, reward_scale=2.))
    assert np.allclose(2*np.array(base.state_value), np.array(scaled.state_value), atol=1e-6)
    assert base.policy == scaled.policy

class ShiftedRewardMDP(DeliveryMDP):
    shift = 7.5
    def reward(self, s, a):
        return super().reward(s, a) + self.shift

def test_reward_shift_adds_constant_to_values():
    plain = random_network(seed=5)
    shifted = ShiftedRewardMDP(
        plain.topology, plain.task_distribution, plain.fleet,
        discount_rate=plain.discount_rate
    )
    base = ValueIteration(**TIGHT).plan_on(plain)
    res = ValueIteration(**TIGHT).plan_on(shifted)
    offset = ShiftedRewardMDP.shift/(1 - plain.discount_rate)
    assert np.allclose(np.array(base.state_value) + offset, np.array(res.state_value), atol=1e-6)
    assert base.policy == res.policy

def test_restarting_from_fixed_point_takes_one_iteration():
    mdp = triangle()
    vi = ValueIteration(max_residual=1e-4)
    res = vi.plan_on(mdp)
    restarted = ValueIteration(max_residual=1e-4, initial_value=res.state_value).plan_on(mdp)
    assert restarted.iterations == 1
    assert restarted.residual <= 1e-4
    assert restarted.policy == res.policy

def test_zero_rewards_give_zero_values_and_deterministic_policy():
    mdp = two_cities(task_prob=.5, task_reward=0, cost_per_km=0)
    res = ValueIteration().plan_on(mdp)
    assert res.iterations == 1
    assert all(v == 0 for v in res.state_value.values())
    for s in mdp.state_list:
        assert res.policy[s] == mdp.actions(s)[0]

    runs = [
        ValueIteration(initial_value="random", seed=11).plan_on(mdp)
        for _ in range(2)
    ]
    assert runs[0].policy == runs[1].policy
    assert np.allclose(np.array(runs[0].state_value), 0, atol=1e-2)

def test_random_initialization_reaches_same_values():
    mdp = triangle()
    zero = ValueIteration(**TIGHT).plan_on(mdp)
    rand = ValueIteration(initial_value="random", seed=0, **TIGHT).plan_on(mdp)
    assert zero.state_value.equivalent_to(rand.state_value)
    assert zero.policy == rand.policy

def test_iteration_cap_warns_and_keeps_values():
    mdp = triangle()
    with pytest.warns(ConvergenceWarning) as record:
        res = ValueIteration(max_iterations=3, max_residual=1e-12).plan_on(mdp)
    assert not res.converged
    assert res.iterations == 3
    assert record[0].message.iterations == 3
    assert record[0].message.residual == res.residual > 1e-12
    assert len(res.policy) == len(mdp.state_list)

def test_converged_run_does_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        ValueIteration().plan_on(triangle())

def test_undiscounted_problem_is_rejected():
    with pytest.raises(ConfigurationError):
        ValueIteration().plan_on(two_cities(discount_rate=1.))

@pytest.mark.parametrize("kwargs", [
    dict(max_residual=0),
    dict(max_residual=-1e-3),
    dict(max_iterations=0),
    dict(max_iterations=2.5),
    dict(initial_value="ones"),
    dict(_version="cython"),
])
def test_invalid_planner_settings(kwargs):
    with pytest.raises(ConfigurationError):
        ValueIteration(**kwargs)

class NaNRewardMDP(DeliveryMDP):
    def reward(self, s, a):
        if a.delivering:
            return float('nan')
        return super().reward(s, a)

@pytest.mark.parametrize("version", ["dict", "vectorized"])
def test_nan_action_value_is_fatal(version):
    base = two_cities(task_prob=.5, task_reward=10)
    mdp = NaNRewardMDP(base.topology, base.task_distribution, base.fleet, discount_rate=.9)
    with pytest.raises(NumericError):
        ValueIteration(_version=version).plan_on(mdp)

def test_result_dataframe():
    mdp = two_cities(task_prob=1., task_reward=50)
    res = ValueIteration(**TIGHT).plan_on(mdp)
    df = res.to_dataframe()
    assert len(df) == len(mdp.state_list)
    assert set(df.columns) == {"state", "value", "action"}
    actions = dict(zip(df["state"], df["action"]))
    values = dict(zip(df["state"], df["value"]))
    assert actions[State(A, B)] == Action(B, True)
    assert np.isclose(values[State(A, B)], 400)
