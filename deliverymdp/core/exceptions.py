class AlgorithmException(Exception):
    """Base class for errors raised while building or solving a planning problem"""
    pass

class ConfigurationError(AlgorithmException, ValueError):
    pass

class TopologyError(AlgorithmException):
    pass

class NumericError(AlgorithmException, ArithmeticError):
    pass

class PolicyIncomplete(AlgorithmException, KeyError):
    """Raised when a policy is queried at a state it was never defined on."""
    def __str__(self):
        # KeyError reprs its argument; keep the plain message
        return Exception.__str__(self)

class ConvergenceWarning(UserWarning):
    def __init__(self, message, *, residual=None, iterations=None):
        super().__init__(message)
        self.residual = residual
        self.iterations = iterations
