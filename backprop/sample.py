"""
sample.py
~~~~~~~~~

Training samples for networks that learn more than one operation.

The input vector carries two operands followed by a one-hot pair that
selects the operation the network should perform.
"""

import math
from enum import Enum
from typing import List


class Operation(Enum):
    ADD = 'add'
    HYPOT = 'hypot'


# One-hot task selector appended to the operands
_SELECTORS = {
    Operation.ADD: [0.0, 1.0],
    Operation.HYPOT: [1.0, 0.0],
}


class Sample:
    """
    Operands ``a`` and ``b`` packed with a task selector.

    Example:
        >>> s = Sample(3, 4, Operation.HYPOT)
        >>> s.inputs
        [3.0, 4.0, 1.0, 0.0]
        >>> s.observed
        [5.0]
    """

    def __init__(self, a: float, b: float, operation: Operation):
        if not isinstance(operation, Operation):
            operation = Operation(operation)

        self.a = float(a)
        self.b = float(b)
        self.operation = operation
        self.inputs: List[float] = [self.a, self.b] + _SELECTORS[operation]

        if operation is Operation.ADD:
            result = self.a + self.b
        else:
            result = math.sqrt(self.a * self.a + self.b * self.b)
        self.observed: List[float] = [result]

    def __repr__(self) -> str:
        return f"Sample({self.a}, {self.b}, {self.operation.value} -> {self.observed[0]})"
