from dataclasses import dataclass
from typing import Any, Mapping

from deliverymdp.core.exceptions import ConfigurationError

@dataclass(frozen=True)
class PlannerConfig:
    """
    Planner settings of a reactive agent. The property names an agent
    description file uses are `discount-factor`, `epsilon-stop` and
    `max-iterations`; see `from_properties`.
    """
    discount_factor : float = .95
    epsilon_stop : float = 1e-4
    max_iterations : int = int(1e6)

    PROPERTY_NAMES = {
        "discount-factor": ("discount_factor", float),
        "epsilon-stop": ("epsilon_stop", float),
        "max-iterations": ("max_iterations", int),
    }

    def __post_init__(self):
        if not (0 <= self.discount_factor < 1):
            raise ConfigurationError(
                f"discount-factor must be in [0, 1), got {self.discount_factor}"
            )
        if not (self.epsilon_stop > 0):
            raise ConfigurationError(f"epsilon-stop must be positive, got {self.epsilon_stop}")
        if isinstance(self.max_iterations, bool) or \
                not float(self.max_iterations).is_integer() or \
                self.max_iterations <= 0:
            raise ConfigurationError(
                f"max-iterations must be a positive integer, got {self.max_iterations}"
            )

    @classmethod
    def from_properties(cls, properties : Mapping[str, Any]) -> "PlannerConfig":
        """
        Reads hyphenated agent properties, which may arrive as strings.
        Unknown properties are ignored; missing ones take the defaults.
        """
        kwargs = {}
        for prop, (field, convert) in cls.PROPERTY_NAMES.items():
            if prop not in properties:
                continue
            value = properties[prop]
            try:
                if convert is int and not isinstance(value, int):
                    value = float(value)
                    if not value.is_integer():
                        raise ValueError(value)
                kwargs[field] = convert(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Invalid value for {prop}: {properties[prop]!r}") from None
        return cls(**kwargs)
