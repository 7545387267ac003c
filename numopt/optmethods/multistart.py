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

"""Global optimizers that run a local optimizer from many starting points.

The local searches call the objective function through the `evaluate`
method of the global optimizer, so they count against its budget and
are cancelled along with it.

"""

from enum import Enum
import logging
import math

import numpy as np

from numopt.utils import random
from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import Optimizer, OptimizationStatus, ParameterSet, \
    PopulationOptimizer, _check_minimum, _check_range
from .powell import Powell
from .quasinewton import BFGS
from .simplex import NelderMead


__all__ = ('LocalMethod', 'SamplePoint', 'MLSL', 'MultiStart')


debug = logging.getLogger(__name__).debug


class LocalMethod(Enum):
    """The local optimizer used to refine a starting point."""

    BFGS = 'bfgs'
    NELDER_MEAD = 'neldermead'
    POWELL = 'powell'


_LOCAL_OPTIMIZERS = {
    LocalMethod.BFGS: BFGS,
    LocalMethod.NELDER_MEAD: NelderMead,
    LocalMethod.POWELL: Powell
}


class SamplePoint:
    """A sampled location and whether a local search has been run from it."""

    __slots__ = ('parameter_set', 'minimized')

    def __init__(self,
                 parameter_set: ParameterSet,
                 minimized: bool = False
                 ) -> None:
        self.parameter_set = parameter_set
        self.minimized = minimized

    def __repr__(self) -> str:
        return f"SamplePoint({self.parameter_set!r}, " + \
            f"minimized={self.minimized})"


class LocalSearchOptimizer(PopulationOptimizer):
    """Support for global optimizers built from local searches.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The first starting point and the bounds. A parameter whose
       bounds are equal is fixed.
    seed : int or None, optional
       The seed for the random-number generator.
    method : LocalMethod or str, optional
       The local optimizer.
    polish : bool, optional
       Run a final local search from the best location, using the
       relative_tolerance and absolute_tolerance settings.
    local_relative_tolerance, local_absolute_tolerance : number, optional
       The tolerances of the local searches.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    """

    strict_bounds = False

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 seed: int | None = None,
                 method: LocalMethod | str = LocalMethod.BFGS,
                 polish: bool = True,
                 local_relative_tolerance: float = 1e-8,
                 local_absolute_tolerance: float = 1e-8,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         initial_values, seed=seed, **kwargs)
        self.method = LocalMethod(method)
        self.polish = polish
        self.local_relative_tolerance = local_relative_tolerance
        self.local_absolute_tolerance = local_absolute_tolerance
        self.local_minimums: list[SamplePoint] = []

    def validate(self) -> None:
        super().validate()
        _check_range('local_relative_tolerance',
                     self.local_relative_tolerance, 0, 1, include_low=False)
        _check_range('local_absolute_tolerance',
                     self.local_absolute_tolerance, 0, 1, include_low=False)

    def _recorded_points(self) -> list[SamplePoint]:
        return self.local_minimums

    def _finish(self) -> None:
        super()._finish()
        if self._scale > 0:
            return

        for point in self._recorded_points():
            point.parameter_set.fitness *= self._scale

    def local_search(self,
                     start: ArrayType,
                     relative_tolerance: float | None = None,
                     absolute_tolerance: float | None = None
                     ) -> Optimizer:
        """Run the local optimizer from a starting point.

        Parameters
        ----------
        start : sequence of number
           The starting point. It is clamped to the bounds.
        relative_tolerance, absolute_tolerance : number or None, optional
           The tolerances for the search. If None the local tolerances
           are used.

        Returns
        -------
        solver : Optimizer
           The local optimizer, after the run.

        """

        if relative_tolerance is None:
            relative_tolerance = self.local_relative_tolerance
        if absolute_tolerance is None:
            absolute_tolerance = self.local_absolute_tolerance

        # The local search must not exceed the remaining budget; the
        # minimum keeps the solver valid, since evaluate cancels the
        # run once the global budget is used up.
        remaining = self.max_function_evaluations - \
            self.state.function_evaluations
        cls = _LOCAL_OPTIMIZERS[self.method]
        solver = cls(self.evaluate, self.npar, self.repair(start),
                     self.lower_bounds, self.upper_bounds,
                     relative_tolerance=relative_tolerance,
                     absolute_tolerance=absolute_tolerance,
                     max_function_evaluations=max(remaining, 10),
                     report_failure=False, record_traces=False)
        solver.parent = self
        solver.minimize()
        return solver

    def polish_best(self) -> None:
        """Refine the best location and take the status of the search."""

        solver = self.local_search(self.best_parameter_set.values,
                                   self.relative_tolerance,
                                   self.absolute_tolerance)
        if self.cancelled:
            return

        self.update_status(solver.status)

    def random_point(self) -> np.ndarray:
        """A location drawn uniformly from within the bounds."""
        return random.uniform(self.rng, self.lower_bounds, self.upper_bounds,
                              self.npar)


class MLSL(LocalSearchOptimizer):
    """Multi-level single linkage.

    Each iteration k (starting at 1) adds sample_size points, drawn
    uniformly from within the bounds, to the sample; on the first
    iteration one of these is the initial location, from which a
    local search is always run. The best ``ceil(gamma * k * N)``
    points of the sample form the reduced sample, and a local search
    is started from each point of it which has not already been used
    as a start, provided there is no point in the reduced sample, nor
    local minimum, with a lower fitness within the critical distance

        r_k = sqrt(pi) * (Gamma(n) * sigma * V * ln(kN) / kN)^(1/n)

    where V is the volume of the bounds, N the sample size, and n the
    number of parameters. The search ends
    after max_no_improvement iterations with no change to the best
    fitness, or after min_no_improvement such iterations if the
    Bayesian estimates of the number of local minima suggest that
    they have all been found.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The first starting point and the bounds. A parameter whose
       bounds are equal is fixed.
    seed : int or None, optional
       The seed for the random-number generator.
    method : LocalMethod or str, optional
       The local optimizer.
    sample_size : int, optional
       The number of points added to the sample per iteration (at
       least 4).
    gamma : number, optional
       The fraction of the sample kept in the reduced sample, in
       (0, 1).
    sigma : number, optional
       Scales the critical distance. It must be positive.
    min_no_improvement, max_no_improvement : int, optional
       The number of iterations with no improvement needed before the
       Bayesian stop rule is used, and that always end the search.
    polish : bool, optional
       Run a final local search from the best location, using the
       relative_tolerance and absolute_tolerance settings.
    local_relative_tolerance, local_absolute_tolerance : number, optional
       The tolerances of the local searches.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    Attributes
    ----------
    sampled_points : list of SamplePoint
       The sample from the last run, sorted by fitness.
    local_minimums : list of SamplePoint
       The results of the local searches.

    References
    ----------

    .. [1] Rinnooy Kan, A. H. G., & Timmer, G. T., "Stochastic global
           optimization methods part II: Multi level methods",
           Mathematical Programming, 39, 57-78, 1987.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 seed: int | None = None,
                 method: LocalMethod | str = LocalMethod.BFGS,
                 sample_size: int = 30,
                 gamma: float = 0.05,
                 sigma: float = 2.0,
                 min_no_improvement: int = 5,
                 max_no_improvement: int = 10,
                 polish: bool = True,
                 local_relative_tolerance: float = 1e-8,
                 local_absolute_tolerance: float = 1e-8,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, initial_values, lower_bounds,
                         upper_bounds, seed=seed, method=method,
                         polish=polish,
                         local_relative_tolerance=local_relative_tolerance,
                         local_absolute_tolerance=local_absolute_tolerance,
                         **kwargs)
        self.sample_size = sample_size
        self.gamma = gamma
        self.sigma = sigma
        self.min_no_improvement = min_no_improvement
        self.max_no_improvement = max_no_improvement
        self.sampled_points: list[SamplePoint] = []

    def validate(self) -> None:
        super().validate()
        _check_minimum('sample_size', self.sample_size, 4)
        _check_range('gamma', self.gamma, 0, 1, include_low=False,
                     include_high=False)
        _check_range('sigma', self.sigma, 0, np.inf, include_low=False)
        _check_minimum('min_no_improvement', self.min_no_improvement, 1)
        _check_minimum('max_no_improvement', self.max_no_improvement,
                       self.min_no_improvement)

    def _recorded_points(self) -> list[SamplePoint]:
        return self.sampled_points + self.local_minimums

    def critical_distance(self, nsampled: int) -> float:
        """The critical distance once nsampled points have been drawn."""

        npar = self.npar
        factor = math.sqrt(math.pi) * \
            (math.gamma(npar) * self.sigma)**(1.0 / npar)
        factor *= np.prod(self.upper_bounds - self.lower_bounds)**(1.0 / npar)
        return factor * (math.log(nsampled) / nsampled)**(1.0 / npar)

    def _add_local_minimum(self, start: ArrayType) -> bool:
        """Run a local search, returning False if cancelled."""

        solver = self.local_search(start)
        if self.cancelled:
            return False

        pset = solver.best_parameter_set
        if pset is not None:
            self.local_minimums.append(SamplePoint(pset.copy(), True))

        return True

    def _sort_sample(self) -> None:
        fvals = [p.parameter_set.fitness for p in self.sampled_points]
        order = np.argsort(fvals, kind='stable')
        self.sampled_points = [self.sampled_points[i] for i in order]

    def _start_points(self,
                      reduced: list[SamplePoint],
                      rk: float
                      ) -> list[SamplePoint]:
        """Select the members of the reduced sample to search from."""

        values = np.asarray([p.parameter_set.values for p in reduced])
        fvals = np.asarray([p.parameter_set.fitness for p in reduced])

        if self.local_minimums:
            lvalues = np.asarray([p.parameter_set.values
                                  for p in self.local_minimums])
            lfvals = np.asarray([p.parameter_set.fitness
                                 for p in self.local_minimums])
        else:
            lvalues = np.empty((0, self.npar))
            lfvals = np.empty(0)

        out = []
        for idx, point in enumerate(reduced):
            if point.minimized:
                continue

            fval = fvals[idx]
            dist = np.linalg.norm(values - values[idx], axis=1)
            close = (dist <= rk) & (fvals < fval)
            close[idx] = False
            if np.any(close):
                continue

            dist = np.linalg.norm(lvalues - values[idx], axis=1)
            if np.any((dist <= rk) & (lfvals < fval)):
                continue

            out.append(point)

        return out

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)
        self.sampled_points = []
        self.local_minimums = []

        nsample = self.sample_size
        oldfit = np.inf
        no_improvement = 0

        while state.iterations < self.max_iterations:

            ndraw = nsample
            if state.iterations == 0:
                x0 = self.initial_values
                f0 = self.evaluate(x0)
                if self.cancelled:
                    return

                self.sampled_points.append(SamplePoint(ParameterSet(x0, f0),
                                                       True))
                if not self._add_local_minimum(x0):
                    return

                ndraw -= 1

            for _ in range(ndraw):
                x = self.random_point()
                fx = self.evaluate(x)
                if self.cancelled:
                    return

                self.sampled_points.append(SamplePoint(ParameterSet(x, fx)))

            # The reduced sample.
            self._sort_sample()
            ntotal = (state.iterations + 1) * nsample
            nreduced = math.ceil(self.gamma * ntotal)
            reduced = self.sampled_points[:nreduced]

            rk = self.critical_distance(ntotal)
            for point in self._start_points(reduced, rk):
                if not self._add_local_minimum(point.parameter_set.values):
                    return

                point.minimized = True

            # The Bayesian stopping rule.
            nmin = len(self.local_minimums)
            ns = len(self.sampled_points)
            denom = ns - nmin - 2
            b1 = nmin * (ns - 1) / denom if denom > 0 else np.inf
            b2 = (ns - nmin - 1) * (ns + nmin) / (ns * (ns - 1))

            best = self.best_parameter_set.fitness
            if state.iterations >= 1 and nmin >= 1 and oldfit == best:
                no_improvement += 1
            else:
                no_improvement = 0
                oldfit = best

            debug("MLSL: iteration %d best=%g minima=%d rk=%g",
                  state.iterations, best, nmin, rk)

            if no_improvement >= self.max_no_improvement or \
               (no_improvement >= self.min_no_improvement and nmin >= 1 and
                b1 - nmin < 0.5 and b2 >= 0.995):
                if self.polish:
                    self.polish_best()
                    return

                self.update_status(OptimizationStatus.SUCCESS)
                return

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)


class MultiStart(LocalSearchOptimizer):
    """Repeated local searches from random starting points.

    The first search starts at the initial location and each later
    iteration starts a search from a point drawn uniformly from within
    the bounds. The run always makes max_iterations searches (which
    defaults to 100 for this class), unless the function-evaluation
    budget is used up, and then optionally polishes the best location.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The first starting point and the bounds. A parameter whose
       bounds are equal is fixed.
    seed : int or None, optional
       The seed for the random-number generator.
    method : LocalMethod or str, optional
       The local optimizer.
    polish : bool, optional
       Run a final local search from the best location, using the
       relative_tolerance and absolute_tolerance settings.
    local_relative_tolerance, local_absolute_tolerance : number, optional
       The tolerances of the local searches.
    max_iterations : int, optional
       The number of local searches.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    Attributes
    ----------
    local_minimums : list of SamplePoint
       The results of the local searches.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 seed: int | None = None,
                 method: LocalMethod | str = LocalMethod.BFGS,
                 polish: bool = True,
                 local_relative_tolerance: float = 1e-8,
                 local_absolute_tolerance: float = 1e-8,
                 max_iterations: int = 100,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, initial_values, lower_bounds,
                         upper_bounds, seed=seed, method=method,
                         polish=polish,
                         local_relative_tolerance=local_relative_tolerance,
                         local_absolute_tolerance=local_absolute_tolerance,
                         max_iterations=max_iterations, **kwargs)

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)
        self.local_minimums = []

        while state.iterations < self.max_iterations:
            if state.iterations == 0:
                start = self.initial_values
            else:
                start = self.random_point()

            solver = self.local_search(start)
            if self.cancelled:
                return

            pset = solver.best_parameter_set
            if pset is not None:
                self.local_minimums.append(SamplePoint(pset.copy(), True))

            debug("MultiStart: iteration %d best=%g", state.iterations,
                  self.best_parameter_set.fitness)
            state.iterations += 1

        if self.polish:
            self.polish_best()
            return

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
