#
#  Copyright (C) 2019 - 2021, 2023 - 2025
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

"""Population-based global optimizers: particle swarm and differential evolution.

The population is a npop by npar array, where each row contains the
parameter values for a member, and the fitness of each member is
stored separately.

"""

import logging

import numpy as np

from numopt.utils import random
from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import OptimizationStatus, PopulationOptimizer, \
    _check_minimum, _check_range


__all__ = ('ParticleSwarm', 'DifferentialEvolution')


debug = logging.getLogger(__name__).debug

# Do not check for convergence until this many iterations have been
# made.
MIN_ITERATIONS = 10


class PopulationSearch(PopulationOptimizer):
    """Support for searches using a fixed-size population."""

    min_population_size = 1

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 population_size: int = 30,
                 *,
                 seed: int | None = None,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         seed=seed, **kwargs)
        self.population_size = population_size

    def validate(self) -> None:
        super().validate()
        _check_minimum('population_size', self.population_size,
                       self.min_population_size)

    def init_population(self) -> tuple[np.ndarray, np.ndarray] | None:
        """Draw the population uniformly from within the bounds.

        Returns None if the run was cancelled.
        """

        pop = np.empty((self.population_size, self.npar))
        fctvals = np.empty(self.population_size)
        for idx in range(self.population_size):
            pop[idx] = random.uniform(self.rng, self.lower_bounds,
                                      self.upper_bounds, self.npar)
            fctvals[idx] = self.evaluate(pop[idx])
            if self.cancelled:
                return None

        return pop, fctvals

    def has_converged(self, fctvals: np.ndarray) -> bool:
        if self.state.iterations < MIN_ITERATIONS:
            return False
        return self.population_std_converged(fctvals)


class ParticleSwarm(PopulationSearch):
    """Particle swarm optimization.

    Each particle has a position, a velocity, and remembers the best
    position it has visited. The velocity is updated with an inertia
    term, which decreases linearly from 0.9 to 0.4 over
    `max_iterations`, and with random pulls toward the particle's
    best position and the best position of the swarm (with
    coefficients of 2.05). Positions are clamped to the bounds.

    The run ends with SUCCESS when, after at least 10 iterations, the
    standard deviation of the particles' best fitness values is below
    ``absolute_tolerance + relative_tolerance * |mean|``.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    lower_bounds, upper_bounds : sequence of number
       The bounds. The upper bound must be larger than the lower bound.
    population_size : int, optional
       The number of particles.
    seed : int or None, optional
       The seed for the random-number generator.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Kennedy, J., & Eberhart, R., "Particle swarm optimization",
           Proceedings of ICNN'95, 1995, doi:10.1109/ICNN.1995.488968

    """

    wmin = 0.4
    wmax = 0.9
    c1 = 2.05
    c2 = 2.05

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)
        init = self.init_population()
        if init is None:
            return

        pos, fctvals = init
        vel = 0.1 * pos
        pbest = pos.copy()
        pbest_fctvals = fctvals.copy()
        state.iterations += 1

        while state.iterations < self.max_iterations:

            w = self.wmax - (self.wmax - self.wmin) * state.iterations / \
                self.max_iterations
            for idx in range(self.population_size):
                gbest = self.best_parameter_set.values
                r1 = random.uniform(self.rng, 0, 1, self.npar)
                r2 = random.uniform(self.rng, 0, 1, self.npar)
                vel[idx] = w * vel[idx] + \
                    self.c1 * r1 * (pbest[idx] - pos[idx]) + \
                    self.c2 * r2 * (gbest - pos[idx])
                pos[idx] = self.repair(pos[idx] + vel[idx])

                fitness = self.evaluate(pos[idx])
                if self.cancelled:
                    return

                if fitness <= pbest_fctvals[idx]:
                    pbest[idx] = pos[idx]
                    pbest_fctvals[idx] = fitness

            debug("ParticleSwarm: iteration %d best=%g", state.iterations,
                  self.best_parameter_set.fitness)
            if self.has_converged(pbest_fctvals):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)


class DifferentialEvolution(PopulationSearch):
    """Differential evolution (DE/rand/1/bin with dither).

    For each member of the population three other distinct members
    r0, r1, r2 are chosen and the mutant ``x_r0 + G * (x_r1 - x_r2)``
    is formed, where G is drawn from [0.5, 1) with probability
    dither_rate and is otherwise the mutation value. The trial vector
    takes each element from the mutant with the crossover probability
    (and at least one element is always taken), and replaces the
    member if it is not worse.

    The run ends with SUCCESS when, after at least 10 iterations, the
    standard deviation of the population fitness is below
    ``absolute_tolerance + relative_tolerance * |mean|``.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    lower_bounds, upper_bounds : sequence of number
       The bounds. The upper bound must be larger than the lower bound.
    population_size : int, optional
       The population size, which must be at least 4.
    seed : int or None, optional
       The seed for the random-number generator.
    mutation : number, optional
       The scale factor used when the step is not dithered, in [0, 2].
    dither_rate : number, optional
       The probability of a dithered scale factor, in [0, 1].
    crossover_probability : number, optional
       The crossover probability, in [0, 1].
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Storn, R., & Price, K., "Differential Evolution - A Simple
           and Efficient Heuristic for global Optimization over
           Continuous Spaces", Journal of Global Optimization, 11,
           341-359, 1997.

    """

    # r0, r1, and r2 must differ from each other and the target.
    min_population_size = 4

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 population_size: int = 30,
                 *,
                 seed: int | None = None,
                 mutation: float = 0.75,
                 dither_rate: float = 0.9,
                 crossover_probability: float = 0.9,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         population_size, seed=seed, **kwargs)
        self.mutation = mutation
        self.dither_rate = dither_rate
        self.crossover_probability = crossover_probability

    def validate(self) -> None:
        super().validate()
        _check_range('mutation', self.mutation, 0, 2)
        _check_range('dither_rate', self.dither_rate, 0, 1)
        _check_range('crossover_probability', self.crossover_probability,
                     0, 1)

    def trial(self, pop: np.ndarray, icurrent: int) -> np.ndarray:
        """Create the trial vector for a member of the population."""

        others = [idx for idx in range(self.population_size)
                  if idx != icurrent]
        r0, r1, r2 = random.choice(self.rng, others, 3)

        if random.random(self.rng) <= self.dither_rate:
            scale = 0.5 + 0.5 * random.random(self.rng)
        else:
            scale = self.mutation

        jrand = random.integers(self.rng, self.npar)
        cross = random.uniform(self.rng, 0, 1, self.npar) <= \
            self.crossover_probability
        cross[jrand] = True

        mutant = self.repair(pop[r0] + scale * (pop[r1] - pop[r2]))
        return np.where(cross, mutant, pop[icurrent])

    def _optimize(self) -> None:

        state = self.state
        self.rng = random.create_rng(self.seed)
        init = self.init_population()
        if init is None:
            return

        pop, fctvals = init
        state.iterations += 1

        while state.iterations < self.max_iterations:

            for idx in range(self.population_size):
                trial = self.trial(pop, idx)
                fitness = self.evaluate(trial)
                if self.cancelled:
                    return

                if fitness <= fctvals[idx]:
                    pop[idx] = trial
                    fctvals[idx] = fitness

            debug("DifferentialEvolution: iteration %d best=%g",
                  state.iterations, self.best_parameter_set.fitness)
            if self.has_converged(fctvals):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
