from deliverymdp.algorithms.valueiteration import ValueIteration, ValueIterationResult
