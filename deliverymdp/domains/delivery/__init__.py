from deliverymdp.domains.delivery.world import City, Task, Vehicle, Topology, GraphTopology, \
    TaskDistribution, TabularTaskDistribution, Fleet
from deliverymdp.domains.delivery.mdp import State, Action, TransitionKernel, RewardFunction, \
    DeliveryMDP, enumerate_states, possible_actions
