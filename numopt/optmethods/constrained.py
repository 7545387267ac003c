#
#  Copyright (C) 2024
#  Smithsonian Astrophysical Observatory
#
#
#  This program is free software; you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation; either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License along
#  with this program; if not, write to the Free Software Foundation, Inc.,
#  51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
#

"""Constrained optimization with the augmented Lagrangian method.

Examples
--------

Minimize ``(x - 2)^2 + (y - 4)^2 + 5`` subject to
``(x - 6)^2 + (y - 10)^2 + 6 <= 13.31``:

>>> import numpy as np
>>> from numopt.optmethods import BFGS
>>> def f(x):
...     return (x[0] - 2)**2 + (x[1] - 4)**2 + 5
>>> def g(x):
...     return (x[0] - 6)**2 + (x[1] - 10)**2 + 6
>>> inner = BFGS(f, 2, [5, 5], [0, 0], [10, 10])
>>> con = Constraint(g, 2, 13.31, ConstraintType.LESSER_THAN_OR_EQUAL_TO)
>>> opt = AugmentedLagrange(f, inner, [con])
>>> best = opt.minimize()
>>> np.round(best.values, 2)
array([4.5 , 7.75])

"""

from collections.abc import Sequence
from enum import Enum
import logging

import numpy as np

from numopt.utils.err import OptimizerErr
from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import Optimizer, OptimizationStatus, ParameterSet


__all__ = ('ConstraintType', 'Constraint', 'AugmentedLagrange')


debug = logging.getLogger(__name__).debug

# The range of the initial penalty parameter, and the limit on the
# multipliers.
RHO_MIN = 1e-6
RHO_MAX = 10.0
MULTIPLIER_MAX = 1e20

# The penalty is increased by GAMMA when the infeasibility does not
# drop by at least TAU. These are the values of Birgin & Martinez.
TAU = 0.5
GAMMA = 10.0


class ConstraintType(Enum):
    """How the constraint function is compared to its value."""

    EQUAL_TO = 0
    LESSER_THAN_OR_EQUAL_TO = 1
    GREATER_THAN_OR_EQUAL_TO = 2


class Constraint:
    """A constraint on the parameters.

    Parameters
    ----------
    function : callable
       The constraint function, which is sent the parameter values
       and returns a scalar.
    npar : int
       The number of parameters.
    value : number
       The value the function is compared to.
    type : ConstraintType
       The comparison.
    tolerance : number, optional
       The allowed violation for the constraint to count as satisfied.

    """

    def __init__(self,
                 function: ObjectiveFunc,
                 npar: int,
                 value: float,
                 type: ConstraintType,
                 tolerance: float = 1e-8
                 ) -> None:
        if not callable(function):
            raise OptimizerErr('noncall', 'constraint function')

        self.function = function
        self.npar = int(npar)
        self.value = float(value)
        self.type = ConstraintType(type)
        self.tolerance = float(tolerance)

    def __repr__(self) -> str:
        return f"<Constraint {self.type.name} {self.value}>"

    def violation(self, values: ArrayType) -> float:
        """The signed violation of the constraint.

        Positive values indicate the constraint is broken (for the
        inequality constraints) and negative values that it holds
        with room to spare.
        """

        actual = float(self.function(np.asarray(values, dtype=float)))
        if self.type == ConstraintType.GREATER_THAN_OR_EQUAL_TO:
            return self.value - actual

        return actual - self.value

    def is_satisfied(self, violation: float) -> bool:
        """Is the violation within the tolerance?"""
        if self.type == ConstraintType.EQUAL_TO:
            return abs(violation) <= self.tolerance
        return violation <= self.tolerance


class AugmentedLagrange(Optimizer):
    """The augmented Lagrangian method.

    The inner optimizer is used to minimize the augmented function

        phi(x) = f(x) + rho / 2 * sum_i (c_i(x) + m_i / rho)^2

    where c_i is the signed violation and m_i the multiplier of the
    constraint. The inequality terms are replaced by
    ``max(0, c_i + m_i / rho)^2``, so they are included while the
    constraint is violated or still carries a multiplier and phi is
    continuous, with a continuous gradient, at the constraint
    boundary. Each inner run after the first starts from the current
    location. After each inner run the
    multipliers are updated to ``m_i + rho * c_i`` (the inequality
    multipliers can not be negative) and the penalty rho is increased
    ten-fold if the infeasibility has not halved.

    A new location is accepted when it is feasible and improves on the
    previous location (or the previous location was not feasible), or
    when it reduces the total violation of an infeasible location. The
    run ends with SUCCESS when a feasible location changes the fitness
    by less than the tolerances, or when the infeasibility is zero.

    Parameters
    ----------
    func : callable
       The objective function.
    optimizer : Optimizer
       The optimizer used to minimize the augmented function. Its
       objective function is replaced, and it must not be an
       `AugmentedLagrange` instance.
    constraints : sequence of Constraint
       The constraints, of which there must be at least one.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    Attributes
    ----------
    rho : number
       The current penalty parameter.

    References
    ----------

    .. [1] Birgin, E. G., & Martinez, J. M., "Improving ultimate
           convergence of an augmented Lagrangian method",
           Optimization Methods and Software, 23, 177-195, 2008.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 optimizer: Optimizer,
                 constraints: Sequence[Constraint],
                 **kwargs
                 ) -> None:
        if not constraints:
            raise OptimizerErr('noconstraints')

        if isinstance(optimizer, AugmentedLagrange):
            raise OptimizerErr('nested')

        super().__init__(func, optimizer.npar, **kwargs)
        for con in constraints:
            if con.npar != self.npar:
                raise OptimizerErr('badsize', 'constraint', self.npar,
                                   con.npar)

        self.constraints = tuple(constraints)
        self.optimizer = optimizer
        self.optimizer.func = self.augmented_function
        self.optimizer.parent = self
        self.rho = 1.0
        self._multipliers = np.zeros(len(self.constraints))

    def _select(self, ctype: ConstraintType) -> np.ndarray:
        idx = [i for i, con in enumerate(self.constraints)
               if con.type == ctype]
        return self._multipliers[idx].copy()

    @property
    def lambda_(self) -> np.ndarray:
        """The multipliers of the equality constraints."""
        return self._select(ConstraintType.EQUAL_TO)

    @property
    def mu(self) -> np.ndarray:
        """The multipliers of the "less than or equal" constraints."""
        return self._select(ConstraintType.LESSER_THAN_OR_EQUAL_TO)

    @property
    def nu(self) -> np.ndarray:
        """The multipliers of the "greater than or equal" constraints."""
        return self._select(ConstraintType.GREATER_THAN_OR_EQUAL_TO)

    def augmented_function(self, values: np.ndarray) -> float:
        """The function minimized by the inner optimizer."""

        phi = self._scale * float(self.func(values))
        rho = self.rho
        for con, mult in zip(self.constraints, self._multipliers):
            shifted = con.violation(values) + mult / rho
            if con.type == ConstraintType.EQUAL_TO or shifted > 0:
                phi += 0.5 * rho * shifted**2

        return phi

    def update_best(self, values: np.ndarray, fitness: float) -> None:
        """The best location is only changed by the acceptance test."""

    def _measure(self, values: np.ndarray) -> tuple[np.ndarray, float, bool]:
        """The violations, total violation, and feasibility of values."""

        viol = np.asarray([con.violation(values) for con in self.constraints])
        penalty = 0.0
        feasible = True
        for con, c in zip(self.constraints, viol):
            if con.type == ConstraintType.EQUAL_TO:
                penalty += abs(c)
            elif c > 0:
                penalty += c

            feasible = feasible and con.is_satisfied(c)

        return viol, penalty, feasible

    def initial_rho(self, fitness: float, violations: np.ndarray) -> float:
        """The starting penalty: 2 |f| / sum(c^2), limited to [1e-6, 10]."""

        con2 = 0.0
        for con, c in zip(self.constraints, violations):
            if con.type == ConstraintType.EQUAL_TO or c > 0:
                con2 += c * c

        num = 2.0 * abs(fitness)
        if num < 1e-300:
            return RHO_MIN
        if con2 < 1e-300:
            return RHO_MAX
        return min(max(num / con2, RHO_MIN), RHO_MAX)

    def update_multipliers(self, violations: np.ndarray) -> float:
        """Update the multipliers and return the infeasibility measure."""

        icm = 0.0
        rho = self.rho
        for idx, (con, c) in enumerate(zip(self.constraints, violations)):
            mult = self._multipliers[idx]
            new = mult + rho * c
            if con.type == ConstraintType.EQUAL_TO:
                icm = max(icm, abs(c))
                self._multipliers[idx] = min(max(-MULTIPLIER_MAX, new),
                                             MULTIPLIER_MAX)
            else:
                icm = max(icm, abs(max(c, -mult / rho)))
                self._multipliers[idx] = min(max(0.0, new), MULTIPLIER_MAX)

        return icm

    def _inner_minimize(self, start: np.ndarray | None = None
                        ) -> np.ndarray | None:
        if start is not None:
            self.optimizer.initial_values = start.copy()

        self.optimizer.minimize()
        best = self.optimizer.best_parameter_set
        if best is None or self.cancelled:
            return None
        return best.values.copy()

    def _optimize(self) -> None:

        # Optimizers without a starting point are not warm-started.
        initial = getattr(self.optimizer, 'initial_values', None)
        try:
            self._augmented_lagrangian(initial is not None)
        finally:
            if initial is not None:
                self.optimizer.initial_values = initial

    def _augmented_lagrangian(self, warm_start: bool) -> None:

        state = self.state
        self._multipliers[:] = 0.0
        self.rho = 1.0

        current = self._inner_minimize()
        if current is None:
            return

        fitness = self.evaluate(current)
        if self.cancelled:
            return

        viol, min_penalty, min_feasible = self._measure(current)
        min_fitness = fitness
        state.best_parameter_set = ParameterSet(current, fitness)
        self.rho = self.initial_rho(fitness, viol)

        icm = np.inf
        while state.iterations < self.max_iterations:
            prev_icm = icm

            current = self._inner_minimize(current if warm_start else None)
            if current is None:
                return

            fitness = self.evaluate(current)
            if self.cancelled:
                return

            viol, penalty, feasible = self._measure(current)
            icm = self.update_multipliers(viol)
            if icm > TAU * prev_icm:
                self.rho *= GAMMA

            debug("AugmentedLagrange: iteration %d f=%g icm=%g rho=%g",
                  state.iterations, fitness, icm, self.rho)

            improved = not min_feasible or penalty < min_penalty or \
                fitness < min_fitness
            if (feasible and improved) or \
               (not min_feasible and penalty < min_penalty):
                if feasible and self.check_convergence(min_fitness, fitness):
                    state.best_parameter_set = ParameterSet(current, fitness)
                    self.update_status(OptimizationStatus.SUCCESS)
                    return

                state.best_parameter_set = ParameterSet(current, fitness)
                min_fitness = fitness
                min_penalty = penalty
                min_feasible = feasible

            elif icm == 0:
                self.update_status(OptimizationStatus.SUCCESS)
                return

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
