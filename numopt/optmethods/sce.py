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

"""The Shuffled Complex Evolution (SCE-UA) method.

The population is kept sorted by fitness. Complex k is made up of the
members k, k + complexes, k + 2 * complexes, ..., so each complex
receives members from across the whole range of fitness values.

"""

import logging

import numpy as np

from numopt.utils import random
from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import OptimizationStatus, PopulationOptimizer, _check_minimum


__all__ = ('ShuffledComplexEvolution', )


debug = logging.getLogger(__name__).debug

# The maximum number of reflection steps made for each sub-complex.
MAX_ALPHA = 3


def trapezoidal_probabilities(n: int) -> np.ndarray:
    """The selection probability of each member of a sorted complex.

    The best member (index 0) has a probability of 2 / (n + 1) and
    the probability drops linearly to 2 / (n * (n + 1)) for the worst.
    """

    rank = np.arange(1, n + 1)
    return 2.0 * (n + 1 - rank) / (n * (n + 1))


def _sort(pop: np.ndarray, fctvals: np.ndarray) -> None:
    """Sort the population, in place, by increasing fitness."""
    order = np.argsort(fctvals, kind='stable')
    pop[:] = pop[order]
    fctvals[:] = fctvals[order]


class ShuffledComplexEvolution(PopulationOptimizer):
    """The SCE-UA method of Duan, Sorooshian, and Gupta.

    A population of ``complexes * cce_iterations`` points is drawn
    uniformly from within the bounds. Each iteration splits the sorted
    population into the complexes, evolves each complex with the
    competitive complex evolution (CCE) step, and then shuffles the
    complexes back together.

    The CCE step is repeated cce_iterations times per complex. It
    selects a sub-complex of npar + 1 distinct members, favoring the
    better members, and up to alpha times replaces the worst member
    of the sub-complex with, in turn, its reflection through the
    centroid of the others, the mid-point between the worst member
    and the centroid, or a random point in the smallest box enclosing
    the complex. The reflection is replaced by the random point when
    it lies outside the bounds, and the random point is always
    accepted. The value of alpha is 1 while the best fitness is still
    improving, and grows to 3 as the number of iterations without
    improvement increases.

    The run ends with SUCCESS once tolerance_steps successive
    iterations have failed to change the best fitness (as measured by
    `check_convergence`).

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
    complexes : int, optional
       The number of complexes.
    cce_iterations : int or None, optional
       The number of points in each complex, which is also the number
       of CCE steps made for each complex per iteration. It must be
       at least npar + 1. If None then 2 * npar + 1 is used.
    tolerance_steps : int, optional
       The number of successive iterations without improvement needed
       to end the run.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Duan, Q., Sorooshian, S., & Gupta, V. K., "Optimal use of
           the SCE-UA global optimization method for calibrating
           watershed models", Journal of Hydrology, 158, 265-284, 1994.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 seed: int | None = None,
                 complexes: int = 5,
                 cce_iterations: int | None = None,
                 tolerance_steps: int = 20,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         seed=seed, **kwargs)
        self.complexes = complexes
        if cce_iterations is None:
            cce_iterations = 2 * self.npar + 1
        self.cce_iterations = cce_iterations
        self.tolerance_steps = tolerance_steps

    @property
    def population_size(self) -> int:
        """The number of points in the population."""
        return self.complexes * self.cce_iterations

    def validate(self) -> None:
        super().validate()
        _check_minimum('complexes', self.complexes, 1)
        _check_minimum('cce_iterations', self.cce_iterations, self.npar + 1)
        _check_minimum('tolerance_steps', self.tolerance_steps, 1)

    def is_feasible(self, values: np.ndarray) -> bool:
        """Are the values within the bounds?"""
        return bool(np.all(values >= self.lower_bounds) and
                    np.all(values <= self.upper_bounds))

    @staticmethod
    def smallest_hypercube(cpop: np.ndarray,
                           rng: np.random.Generator
                           ) -> np.ndarray:
        """A random point in the smallest box that encloses the complex."""
        low = cpop.min(axis=0)
        high = cpop.max(axis=0)
        return low + (high - low) * random.uniform(rng, 0, 1, cpop.shape[1])

    def evolve_complex(self,
                       cpop: np.ndarray,
                       cfit: np.ndarray,
                       alpha: int,
                       probs: np.ndarray,
                       rng: np.random.Generator
                       ) -> bool:
        """Apply the CCE step to a complex.

        The complex, which must be sorted, is updated in place and
        left sorted.

        Parameters
        ----------
        cpop : ndarray
           The members of the complex, one per row.
        cfit : ndarray
           The fitness of each member.
        alpha : int
           The number of replacements made per sub-complex.
        probs : ndarray
           The selection probability of each member.
        rng : numpy.random.Generator
           The generator for this complex.

        Returns
        -------
        ok : bool
           False if the run was cancelled.

        """

        nmembers = cpop.shape[0]
        nsub = self.npar + 1
        members = np.arange(nmembers)

        for _ in range(nmembers):
            idx = np.sort(random.choice(rng, members, nsub, p=probs))
            sub = cpop[idx].copy()
            subfit = cfit[idx].copy()

            for _ in range(alpha):
                order = np.argsort(subfit, kind='stable')
                idx = idx[order]
                sub = sub[order]
                subfit = subfit[order]

                worst = sub[-1]
                centroid = sub[:-1].mean(axis=0)

                trial = 2.0 * centroid - worst
                if not self.is_feasible(trial):
                    trial = self.smallest_hypercube(cpop, rng)

                fitness = self.evaluate(trial)
                if self.cancelled:
                    return False

                if not fitness < subfit[-1]:
                    trial = 0.5 * (centroid + worst)
                    fitness = self.evaluate(trial)
                    if self.cancelled:
                        return False

                    if not fitness < subfit[-1]:
                        trial = self.smallest_hypercube(cpop, rng)
                        fitness = self.evaluate(trial)
                        if self.cancelled:
                            return False

                sub[-1] = trial
                subfit[-1] = fitness

            cpop[idx] = sub
            cfit[idx] = subfit
            _sort(cpop, cfit)

        return True

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)

        npop = self.population_size
        pop = np.empty((npop, self.npar))
        fctvals = np.empty(npop)
        for idx in range(npop):
            pop[idx] = random.uniform(self.rng, self.lower_bounds,
                                      self.upper_bounds, self.npar)
            fctvals[idx] = self.evaluate(pop[idx])
            if self.cancelled:
                return

        _sort(pop, fctvals)
        oldfit = fctvals[0]
        state.iterations += 1

        rngs = random.spawn_generators(self.rng, self.complexes)
        probs = trapezoidal_probabilities(self.cce_iterations)

        nconverged = 0
        alpha = 1
        while state.iterations < self.max_iterations:

            for k in range(self.complexes):
                cpop = pop[k::self.complexes].copy()
                cfit = fctvals[k::self.complexes].copy()
                if not self.evolve_complex(cpop, cfit, alpha, probs, rngs[k]):
                    return

                pop[k::self.complexes] = cpop
                fctvals[k::self.complexes] = cfit

            _sort(pop, fctvals)
            newfit = fctvals[0]
            debug("ShuffledComplexEvolution: iteration %d best=%g alpha=%d",
                  state.iterations, newfit, alpha)

            if self.check_convergence(oldfit, newfit):
                nconverged += 1
                alpha = min(MAX_ALPHA, nconverged + 1)
                if nconverged >= self.tolerance_steps:
                    self.update_status(OptimizationStatus.SUCCESS)
                    return

            else:
                nconverged = 0
                alpha = 1

            oldfit = newfit
            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
