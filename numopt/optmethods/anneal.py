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

"""Adaptive simulated annealing."""

import logging

import numpy as np

from numopt.utils import random
from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import OptimizationStatus, PopulationOptimizer, _check_minimum


__all__ = ('SimulatedAnnealing', )


debug = logging.getLogger(__name__).debug


class SimulatedAnnealing(PopulationOptimizer):
    """Simulated annealing with the Corana adaptive step size.

    The search starts at the center of the bounds. Each iteration
    sets the temperature to

        T = max(min_temperature, initial_temperature / ln(iter + e - 1))

    and then makes temperature_cycles blocks of update_cycles sweeps.
    Each sweep moves one parameter at a time by a uniform step within
    +/- its step size, skipping moves that leave the bounds, and
    accepts the move with the Metropolis rule. At the end of each
    block the step size of a parameter is increased if more than 60%
    of its moves were accepted, and decreased if fewer than 40% were.
    At the end of an iteration the search restarts from the best
    point found so far.

    There is no convergence test: the run always ends when
    max_iterations is reached, so the status is
    MAXIMUM_ITERATIONS_REACHED (unless the function-evaluation budget
    is used up first). Each iteration makes up to
    ``temperature_cycles * update_cycles * npar`` evaluations.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    lower_bounds, upper_bounds : sequence of number
       The bounds. The upper bound must be larger than the lower bound.
    seed : int or None, optional
       The seed for the random-number generator.
    initial_temperature : number, optional
       The starting temperature, which must be at least 1. The initial
       step size for each parameter is its inverse.
    min_temperature : number, optional
       The lowest temperature.
    update_cycles : int, optional
       The number of sweeps before the step sizes are adjusted
       (at least 4).
    temperature_cycles : int, optional
       The number of step-size adjustments per iteration (at least 4).
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Corana, A., Marchesi, M., Martini, C., & Ridella, S.,
           "Minimizing multimodal functions of continuous variables
           with the simulated annealing algorithm", ACM Transactions
           on Mathematical Software, 13, 262-280, 1987.

    """

    # The Corana step-adjustment factor for each parameter.
    step_factor = 2.0

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 seed: int | None = None,
                 initial_temperature: float = 10,
                 min_temperature: float = 0.1,
                 update_cycles: int = 4,
                 temperature_cycles: int = 10,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         seed=seed, **kwargs)
        self.initial_temperature = initial_temperature
        self.min_temperature = min_temperature
        self.update_cycles = update_cycles
        self.temperature_cycles = temperature_cycles

    def validate(self) -> None:
        super().validate()
        _check_minimum('initial_temperature', self.initial_temperature, 1)
        _check_minimum('update_cycles', self.update_cycles, 4)
        _check_minimum('temperature_cycles', self.temperature_cycles, 4)

    def temperature(self, iteration: int) -> float:
        """The temperature for an iteration."""
        temp = self.initial_temperature / np.log(iteration + np.e - 1.0)
        return max(self.min_temperature, temp)

    def adjust_steps(self,
                     steps: np.ndarray,
                     acceptances: np.ndarray
                     ) -> np.ndarray:
        """Aim for an acceptance rate of between 40% and 60%."""

        rate = acceptances / self.update_cycles
        steps = steps.copy()
        high = rate > 0.6
        low = rate < 0.4
        steps[high] *= 1.0 + self.step_factor * (rate[high] - 0.6) / 0.4
        steps[low] /= 1.0 + self.step_factor * (0.4 - rate[low]) / 0.4
        return steps

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)

        x = 0.5 * (self.lower_bounds + self.upper_bounds)
        fx = self.evaluate(x)
        if self.cancelled:
            return

        steps = np.full(self.npar, 1.0 / self.initial_temperature)

        while state.iterations < self.max_iterations:
            temp = self.temperature(state.iterations)

            for _ in range(self.temperature_cycles):
                acceptances = np.zeros(self.npar)
                for _ in range(self.update_cycles):
                    for k in range(self.npar):
                        xp = x.copy()
                        xp[k] += steps[k] * random.uniform(self.rng, -1, 1)
                        if xp[k] < self.lower_bounds[k] or \
                           xp[k] > self.upper_bounds[k]:
                            continue

                        fxp = self.evaluate(xp)
                        if self.cancelled:
                            return

                        df = fxp - fx
                        if df < 0 or random.random(self.rng) < np.exp(-df / temp):
                            acceptances[k] += 1
                            x = xp
                            fx = fxp

                steps = self.adjust_steps(steps, acceptances)

            state.iterations += 1

            best = self.best_parameter_set
            x = best.values.copy()
            fx = best.fitness
            debug("SimulatedAnnealing: iteration %d T=%g best=%g",
                  state.iterations, temp, fx)

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
