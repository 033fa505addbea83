import logging
import numpy as np
from abc import abstractmethod
from typing import Sequence, Hashable, TypeVar
from deliverymdp.core.mdp.mdp import MarkovDecisionProcess
from deliverymdp.core.mdp.tables import domaintuple
from deliverymdp.core.utils.funcutils import method_cache, cached_property
from deliverymdp.core.distributions import FiniteDistribution

logger = logging.getLogger(__name__)

HashableState = TypeVar('HashableState', bound=Hashable)
HashableAction = TypeVar('HashableAction', bound=Hashable)

class TabularMarkovDecisionProcess(MarkovDecisionProcess):
    """
    Tabular MDPs can be fully enumerated (e.g., as matrices) and
    assume states/actions are hashable.
    """

    ########################################
    #         Functional interface         #
    ########################################
    @abstractmethod
    def initial_state_dist(self) -> FiniteDistribution:
        pass

    @abstractmethod
    def next_state_dist(self, s : HashableState, a : HashableAction) -> FiniteDistribution:
        pass

    @method_cache
    def _cached_next_state_dist(self, s : HashableState, a : HashableAction) -> FiniteDistribution:
        return self.next_state_dist(s, a)

    @method_cache
    def _cached_actions(self, s : HashableState) -> Sequence[HashableAction]:
        return self.actions(s)

    @cached_property
    def state_list(self) -> Sequence[HashableState]:
        """
        List of states. Note that state ordering is only guaranteed to be
        consistent for a particular TabularMarkovDecisionProcess instance.
        """
        try:
            return domaintuple(self._state_list)
        except AttributeError:
            pass
        logger.info("State space unspecified; performing reachability analysis.")
        states = self.reachable_states()
        try:
            return domaintuple(sorted(states))
        except TypeError: #unsortable
            pass
        return domaintuple(states)

    @cached_property
    def action_list(self) -> Sequence[HashableAction]:
        """
        List of actions in order of first appearance over `state_list`.
        """
        try:
            return domaintuple(self._action_list)
        except AttributeError:
            pass
        actions = {}
        for s in self.state_list:
            for a in self._cached_actions(s):
                actions.setdefault(a, None)
        return domaintuple(actions)


    ########################################
    #             Matrix interface         #
    ########################################
    @cached_property
    def transition_matrix(self) -> np.ndarray:
        tf = np.zeros((
            len(self.state_list),
            len(self.action_list),
            len(self.state_list)
        ))
        for si, s in enumerate(self.state_list):
            for a in self._cached_actions(s):
                ai = self.action_list.index(a)
                for ns, nsp in self._cached_next_state_dist(s, a).items():
                    nsi = self.state_list.index(ns)
                    tf[si, ai, nsi] = nsp
        tf.setflags(write=False)
        return tf

    @cached_property
    def action_matrix(self) -> np.ndarray:
        am = np.zeros((
            len(self.state_list),
            len(self.action_list),
        ), dtype=bool)
        for si, s in enumerate(self.state_list):
            for a in self._cached_actions(s):
                ai = self.action_list.index(a)
                am[si, ai] = True
        am.setflags(write=False)
        return am

    @cached_property
    def state_action_reward_matrix(self) -> np.ndarray:
        rf = np.zeros((
            len(self.state_list),
            len(self.action_list),
        ))
        for si, s in enumerate(self.state_list):
            for a in self._cached_actions(s):
                rf[si, self.action_list.index(a)] = self.reward(s, a)
        rf.setflags(write=False)
        return rf

    @cached_property
    def absorbing_state_vec(self) -> np.ndarray:
        absorbing = np.array([self.is_absorbing(s) for s in self.state_list], dtype=bool)
        absorbing.setflags(write=False)
        return absorbing

    @cached_property
    def dead_end_state_vec(self) -> np.ndarray:
        dead_ends = ~self.action_matrix.any(-1)
        dead_ends.setflags(write=False)
        return dead_ends

    @cached_property
    def initial_state_vec(self) -> np.ndarray:
        s0 = self.initial_state_dist()
        s0 = np.array([s0.prob(s) for s in self.state_list], dtype=float)
        s0.setflags(write=False)
        return s0

    def expected_next_state_values(self, state_values : np.ndarray) -> np.ndarray:
        """
        `(S, A)` matrix of `sum_ns P(ns | s, a) * state_values[ns]`.
        Subclasses with more structure in their dynamics can override
        this to avoid materializing the full transition matrix.
        """
        return np.einsum("san,n->sa", self.transition_matrix, state_values)
