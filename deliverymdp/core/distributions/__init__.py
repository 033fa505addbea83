from deliverymdp.core.distributions.distributions import Distribution, FiniteDistribution
from deliverymdp.core.distributions.dictdistribution import DictDistribution, DeterministicDistribution
