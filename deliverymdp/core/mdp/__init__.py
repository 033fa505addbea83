from deliverymdp.core.mdp.mdp import MarkovDecisionProcess, State, Action
from deliverymdp.core.mdp.tabularmdp import TabularMarkovDecisionProcess, HashableState, HashableAction
from deliverymdp.core.mdp.policy import Policy, PolicyEvaluationResult, SimulationResult, Step
from deliverymdp.core.mdp.tabularpolicy import TabularPolicy
from deliverymdp.core.mdp.tables import StateTable, StateActionTable, domaintuple
