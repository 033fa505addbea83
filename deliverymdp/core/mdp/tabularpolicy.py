import numpy as np
from frozendict import frozendict
from typing import Mapping

from deliverymdp.core.distributions import DeterministicDistribution
from deliverymdp.core.exceptions import ConfigurationError, PolicyIncomplete
from deliverymdp.core.mdp.mdp import State, Action
from deliverymdp.core.mdp.policy import Policy, PolicyEvaluationResult
from deliverymdp.core.mdp.tabularmdp import TabularMarkovDecisionProcess
from deliverymdp.core.mdp.tables import StateActionTable, StateTable

class TabularPolicy(Policy):
    """
    Deterministic stationary policy stored as an immutable
    `{state: action}` table.
    """
    def __init__(self, state_actions : Mapping[State, Action]):
        self._state_actions = frozendict(state_actions)

    @classmethod
    def from_state_action_lists(cls, state_list, action_list, action_indices):
        return cls({s: action_list[ai] for s, ai in zip(state_list, action_indices)})

    def action_dist(self, s : State) -> DeterministicDistribution:
        return DeterministicDistribution(self[s])

    def action(self, s : State, rng=None) -> Action:
        return self[s]

    def __getitem__(self, s : State) -> Action:
        try:
            return self._state_actions[s]
        except KeyError:
            raise PolicyIncomplete(f"Policy is undefined at state {s!r}") from None

    def __contains__(self, s):
        return s in self._state_actions

    def __len__(self):
        return len(self._state_actions)

    def __iter__(self):
        yield from self._state_actions

    def keys(self):
        return self._state_actions.keys()

    def items(self):
        return self._state_actions.items()

    def __eq__(self, other):
        if not isinstance(other, TabularPolicy):
            return NotImplemented
        return self._state_actions == other._state_actions

    def __repr__(self):
        return f"{self.__class__.__name__}({dict(self._state_actions)})"

    def evaluate_on(self, mdp: TabularMarkovDecisionProcess):
        """
        Exact evaluation of a discounted MDP by solving
        `(I - discount_rate * P_pi) v = r_pi`.
        """
        if not (0 <= mdp.discount_rate < 1):
            raise ConfigurationError(
                f"Exact policy evaluation requires a discount rate in [0, 1), got {mdp.discount_rate}"
            )
        n_states = len(mdp.state_list)
        state_rewards = np.zeros(n_states)
        markov_process = np.zeros((n_states, n_states))
        for si, s in enumerate(mdp.state_list):
            if mdp.is_absorbing(s):
                continue
            a = self[s]
            state_rewards[si] = mdp.reward(s, a)
            for ns, p in mdp.next_state_dist(s, a).items():
                markov_process[si, mdp.state_list.index(ns)] += p
        successor_representation = np.linalg.inv(
            np.eye(n_states) - mdp.discount_rate*markov_process
        )
        state_value = successor_representation @ state_rewards
        action_value = np.where(
            mdp.action_matrix,
            mdp.state_action_reward_matrix + \
                mdp.discount_rate*mdp.expected_next_state_values(state_value),
            -np.inf
        )
        action_value[mdp.absorbing_state_vec, :] = 0
        state_occupancy = np.einsum(
            "sz,s->z",
            successor_representation,
            mdp.initial_state_vec
        )
        return PolicyEvaluationResult(
            state_value=StateTable.from_state_list(
                state_list=mdp.state_list,
                data=state_value
            ),
            action_value=StateActionTable.from_state_action_lists(
                state_list=mdp.state_list,
                action_list=mdp.action_list,
                data=action_value
            ),
            initial_value=float(state_value.dot(mdp.initial_state_vec)),
            state_occupancy=StateTable.from_state_list(
                state_list=mdp.state_list,
                data=state_occupancy
            ),
            n_simulations=None
        )
