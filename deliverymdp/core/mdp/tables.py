import numpy as np
from typing import Any, Mapping, Sequence, Tuple
from deliverymdp.core.utils.funcutils import cached_property

Vector = Sequence[float]
Matrix = Sequence[Vector]

class domaintuple(tuple):
    """A tuple with constant-time `index`."""
    def __new__(cls, elements):
        if isinstance(elements, cls):
            return elements
        return super().__new__(cls, elements)
    def __repr__(self):
        return f"{self.__class__.__name__}({super().__repr__()})"
    @cached_property
    def _index(self) -> Mapping[Any,int]:
        return {e: ei for ei, e in enumerate(self)}
    def index(self, element) -> int:
        return self._index[element]
    def __contains__(self, element):
        try:
            return element in self._index
        except TypeError: #unhashable
            return False
    def __hash__(self):
        return tuple.__hash__(self)

class StateTable:
    """
    Read-only mapping from states to numbers, backed by a numpy array.
    Behaves like a dict for lookup and iteration, and like an array
    under `np.array(table)`.
    """
    def __init__(self, state_list, data):
        self._state_list = domaintuple(state_list)
        data = np.array(data, dtype=float)
        if data.shape[:1] != (len(self._state_list), ):
            raise ValueError(
                f"Data of shape {data.shape} does not match {len(self._state_list)} states"
            )
        data.setflags(write=False)
        self._data = data

    @classmethod
    def from_state_list(cls, state_list, data : Vector) -> "StateTable":
        return cls(state_list, data)

    @classmethod
    def from_dict(cls, state_values : Mapping[Any, float]) -> "StateTable":
        state_list, data = zip(*state_values.items())
        return cls.from_state_list(state_list, data)

    @property
    def state_list(self):
        return self._state_list

    def __getitem__(self, s):
        return float(self._data[self._state_list.index(s)])

    def __contains__(self, s):
        return s in self._state_list

    def __len__(self):
        return len(self._state_list)

    def __iter__(self):
        yield from self._state_list

    def keys(self):
        yield from self._state_list

    def items(self):
        yield from ((k, self[k]) for k in self.keys())

    def values(self):
        yield from (self[k] for k in self.keys())

    def get(self, s, default=None):
        try:
            return self[s]
        except KeyError:
            return default

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data
        return self._data.astype(dtype)

    def equivalent_to(self, other : "StateTable", *, rtol=1e-05, atol=1e-08) -> bool:
        return (
            self.state_list == other.state_list and \
            np.isclose(self._data, np.array(other), atol=atol, rtol=rtol).all()
        )

    def to_series(self, name="value"):
        import pandas as pd
        return pd.Series(self._data, index=pd.Index(list(self._state_list), tupleize_cols=False), name=name)

    def __repr__(self):
        return f"{self.__class__.__name__}({dict(self.items())})"

class StateActionTable(StateTable):
    """
    Two-level table: `table[s]` gives a `{action: value}` dict over the
    actions of the table and `table[s, a]` gives a single value.
    """
    def __init__(self, state_list, action_list, data):
        super().__init__(state_list, data)
        self._action_list = domaintuple(action_list)
        if self._data.shape != (len(self._state_list), len(self._action_list)):
            raise ValueError(
                f"Data of shape {self._data.shape} does not match " + \
                f"{len(self._state_list)} states and {len(self._action_list)} actions"
            )

    @classmethod
    def from_state_action_lists(cls, state_list, action_list, data : Matrix) -> "StateActionTable":
        return cls(state_list, action_list, data)

    @classmethod
    def from_dict(cls, action_values : Mapping[Any, Mapping[Any, float]], default_value=float('-inf')):
        state_list = domaintuple(action_values.keys())
        action_list = {}
        for action_dict in action_values.values():
            for a in action_dict:
                action_list.setdefault(a, None)
        action_list = domaintuple(action_list)
        data = np.full((len(state_list), len(action_list)), default_value, dtype=float)
        for si, s in enumerate(state_list):
            for a, v in action_values[s].items():
                data[si, action_list.index(a)] = v
        return cls(state_list, action_list, data)

    @property
    def action_list(self):
        return self._action_list

    def __getitem__(self, key):
        if key in self._state_list:
            row = self._data[self._state_list.index(key)]
            return {a: float(v) for a, v in zip(self._action_list, row)}
        if isinstance(key, tuple) and len(key) == 2:
            s, a = key
            return float(self._data[self._state_list.index(s), self._action_list.index(a)])
        raise KeyError(key)
