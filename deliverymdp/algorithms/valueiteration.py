import logging
import math
import warnings
from dataclasses import dataclass
from typing import Mapping, Union

import numpy as np

from deliverymdp.core.algorithmclasses import Plans, PlanningResult
from deliverymdp.core.exceptions import ConfigurationError, TopologyError, \
    NumericError, ConvergenceWarning
from deliverymdp.core.mdp import TabularMarkovDecisionProcess, TabularPolicy, \
    StateTable, StateActionTable

logger = logging.getLogger(__name__)

class ValueIteration(Plans):
    """
    Synchronous value iteration: every sweep computes the Bellman
    backup of all states from a snapshot of the previous values.

    Parameters
    ---------
    :max_iterations:  Cap on the number of sweeps. Hitting it issues a
                      `ConvergenceWarning` and returns the current values.
    :max_residual:    Stop once no state value changes by more than this.
    :initial_value:   "zero", "random" (uniform in [0, 1)), or a mapping
                      from states to starting values.
    :seed:            Seed for "random" initialization.
    """
    VALUE_DECIMAL_PRECISION = 10
    def __init__(
        self,
        max_iterations=int(1e6),
        max_residual=1e-4,
        initial_value : Union[str, Mapping] = "zero",
        seed=None,
        _version="vectorized"
    ):
        if not float(max_iterations).is_integer() or max_iterations <= 0:
            raise ConfigurationError(f"max_iterations must be a positive integer, got {max_iterations}")
        if not (max_residual > 0):
            raise ConfigurationError(f"max_residual must be positive, got {max_residual}")
        if isinstance(initial_value, str) and initial_value not in ("zero", "random"):
            raise ConfigurationError(f"Unknown initialization {initial_value!r}")
        if _version not in ("dict", "vectorized"):
            raise ConfigurationError(f"Unknown value iteration version {_version!r}")
        self.max_iterations = int(max_iterations)
        self.max_residual = max_residual
        self.initial_value = initial_value
        self.seed = seed
        self._version = _version

    def plan_on(self, mdp: TabularMarkovDecisionProcess) -> "ValueIterationResult":
        if not (0 <= mdp.discount_rate < 1):
            raise ConfigurationError(
                f"MDP has discount rate of {mdp.discount_rate}; value iteration requires one in [0, 1)."
            )
        if mdp.dead_end_state_vec.any():
            dead_ends = [s for s, d in zip(mdp.state_list, mdp.dead_end_state_vec) if d]
            raise TopologyError(f"No actions can be taken in states {dead_ends}")

        logger.info(
            f"Running value iteration ({self._version}) on {len(mdp.state_list)} states " + \
            f"with discount rate {mdp.discount_rate}"
        )
        initial_values = self._initial_state_values(mdp)
        if self._version == "dict":
            run = value_iteration_tabular
        else:
            run = value_iteration_vectorized
        state_values, action_values, iterations, residual = run(
            mdp,
            state_values=initial_values,
            max_residual=self.max_residual,
            max_iterations=self.max_iterations,
        )
        converged = residual <= self.max_residual
        if converged:
            logger.info(f"Value iteration converged after {iterations} iterations (residual {residual:.3g})")
        else:
            warnings.warn(ConvergenceWarning(
                f"Value iteration not converged after {iterations} iterations; " + \
                f"residual {residual:.3g} > {self.max_residual:.3g}",
                residual=residual,
                iterations=iterations,
            ))

        policy = greedy_policy(mdp, action_values, self.VALUE_DECIMAL_PRECISION)
        state_value = StateTable.from_state_list(mdp.state_list, state_values)
        return ValueIterationResult(
            iterations=iterations,
            converged=converged,
            residual=float(residual),
            state_value=state_value,
            action_value=StateActionTable.from_state_action_lists(
                mdp.state_list, mdp.action_list, action_values
            ),
            initial_value=float(state_values.dot(mdp.initial_state_vec)),
            policy=policy,
        )

    def _initial_state_values(self, mdp : TabularMarkovDecisionProcess) -> np.ndarray:
        n_states = len(mdp.state_list)
        if isinstance(self.initial_value, str):
            if self.initial_value == "random":
                values = np.random.default_rng(self.seed).random(n_states)
            else:
                values = np.zeros(n_states)
        else:
            values = np.array([self.initial_value[s] for s in mdp.state_list], dtype=float)
        if not np.isfinite(values).all():
            raise NumericError("Initial state values must be finite")
        values[mdp.absorbing_state_vec] = 0
        return values

@dataclass
class ValueIterationResult(PlanningResult):
    iterations : int
    converged : bool
    residual : float
    state_value : StateTable
    action_value : StateActionTable
    initial_value : float
    policy : TabularPolicy

    def to_dataframe(self):
        import pandas as pd
        return pd.DataFrame([
            {"state": s, "value": v, "action": self.policy[s]}
            for s, v in self.state_value.items()
        ])

def greedy_policy(
    mdp : TabularMarkovDecisionProcess,
    action_values : np.ndarray,
    decimal_precision : int
) -> TabularPolicy:
    """
    Picks the first maximizing action in each state's own action order,
    comparing values rounded to `decimal_precision` places.
    """
    policy = {}
    for si, s in enumerate(mdp.state_list):
        best_action, best_value = None, -float('inf')
        for a in mdp._cached_actions(s):
            q = round(float(action_values[si, mdp.action_list.index(a)]), decimal_precision)
            if best_action is None or q > best_value:
                best_action, best_value = a, q
        policy[s] = best_action
    return TabularPolicy(policy)

def value_iteration_vectorized(
    mdp : TabularMarkovDecisionProcess,
    state_values : np.ndarray,
    max_residual=1e-4,
    max_iterations=int(1e6),
):
    action_matrix = mdp.action_matrix
    reward_matrix = mdp.state_action_reward_matrix
    absorbing_state_vec = mdp.absorbing_state_vec
    v = np.array(state_values, dtype=float)
    residual = float('inf')
    for i in range(max_iterations):
        q = reward_matrix + mdp.discount_rate*mdp.expected_next_state_values(v)
        q[absorbing_state_vec] = 0
        if np.isnan(q[action_matrix]).any():
            raise NumericError(f"NaN action value encountered in iteration {i + 1}")
        q = np.where(action_matrix, q, -np.inf)
        nv = q.max(axis=-1)
        residual = float(np.abs(nv - v).max())
        v = nv
        if residual <= max_residual:
            break
    return v, q, i + 1, residual

def value_iteration_tabular(
    mdp : TabularMarkovDecisionProcess,
    state_values : np.ndarray,
    max_residual=1e-4,
    max_iterations=int(1e6),
):
    reward = {
        (s, a): mdp.reward(s, a)
        for s in mdp.state_list for a in mdp._cached_actions(s)
    }
    v = dict(zip(mdp.state_list, (float(x) for x in state_values)))
    residual = float('inf')
    for i in range(max_iterations):
        v_old = dict(v)
        q = {}
        for s in mdp.state_list:
            q[s] = {}
            for a in mdp._cached_actions(s):
                if mdp.is_absorbing(s):
                    q[s][a] = 0.
                    continue
                future = math.fsum(
                    prob*v_old[ns]
                    for ns, prob in mdp._cached_next_state_dist(s, a).items()
                )
                q[s][a] = reward[s, a] + mdp.discount_rate*future
                if math.isnan(q[s][a]):
                    raise NumericError(f"NaN action value for {a} in {s} in iteration {i + 1}")
            v[s] = max(q[s].values())
        residual = max(abs(v[s] - v_old[s]) for s in mdp.state_list)
        if residual <= max_residual:
            break
    action_values = np.full((len(mdp.state_list), len(mdp.action_list)), -np.inf)
    for si, s in enumerate(mdp.state_list):
        for a, qa in q[s].items():
            action_values[si, mdp.action_list.index(a)] = qa
    return np.array([v[s] for s in mdp.state_list]), action_values, i + 1, residual
