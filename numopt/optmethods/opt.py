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

"""The shared optimizer machinery.

Every optimizer is built on the `Optimizer` class, which owns the
objective function, the sign convention (the optimizers always
minimize internally), the iteration and function-evaluation budgets,
the convergence tolerances, and an `OptimizerState` that records the
progress of a run. The behavior shared by the algorithms - calling the
objective function, clamping parameters to their bounds, and the
convergence test - is written once, here.

"""

from collections.abc import Sequence
from configparser import ConfigParser
from enum import Enum
import logging
import sys

import numpy as np

from numopt import get_config
from numopt.utils.err import OptimizerErr
from numopt.utils.types import ArrayType, ObjectiveFunc


__all__ = ('OptimizationStatus', 'ParameterSet', 'OptimizerState',
           'Optimizer', 'BoundedOptimizer', 'PopulationOptimizer',
           'repair_parameter', 'repair_parameters',
           'check_convergence', 'check_bounds', 'DEFAULT_SEED')


warning = logging.getLogger(__name__).warning
debug = logging.getLogger(__name__).debug

config = ConfigParser()
config.read(get_config())

_MAX_ITERATIONS = config.getint('optimizer', 'max_iterations',
                                fallback=10000)

_max_nfev = config.get('optimizer', 'max_function_evaluations',
                       fallback='NONE').strip().upper()
_MAX_FUNCTION_EVALUATIONS = sys.maxsize
if not _max_nfev.startswith('NONE'):
    _MAX_FUNCTION_EVALUATIONS = int(_max_nfev)

_RELATIVE_TOLERANCE = config.getfloat('optimizer', 'relative_tolerance',
                                      fallback=1e-8)
_ABSOLUTE_TOLERANCE = config.getfloat('optimizer', 'absolute_tolerance',
                                      fallback=1e-8)
_REPORT_FAILURE = config.getboolean('optimizer', 'report_failure',
                                    fallback=True)
_RECORD_TRACES = config.getboolean('optimizer', 'record_traces',
                                   fallback=True)

DEFAULT_SEED = config.getint('random', 'seed', fallback=12345)
"""The default seed for the stochastic optimizers."""

del config, _max_nfev


class OptimizationStatus(Enum):
    """The state of an optimization run.

    `NONE` is the initial state and the others are terminal.
    """

    NONE = 0
    SUCCESS = 1
    MAXIMUM_ITERATIONS_REACHED = 2
    MAXIMUM_FUNCTION_EVALUATIONS_REACHED = 3
    FAILURE = 4


_BUDGET_MESSAGES = {
    OptimizationStatus.MAXIMUM_ITERATIONS_REACHED:
    "the maximum number of iterations (%d) has been reached",
    OptimizationStatus.MAXIMUM_FUNCTION_EVALUATIONS_REACHED:
    "the maximum number of function evaluations (%d) has been reached"
}


class ParameterSet:
    """A set of parameter values and the fitness at that location.

    The values are copied, so a parameter set can be stored without
    being changed by later updates to the array it was created from.

    Parameters
    ----------
    values : sequence of number
       The parameter values.
    fitness : number, optional
       The objective-function value for these parameters.
    weight : number, optional
       An optional weight (e.g. for use by a sampler).

    """

    __slots__ = ('values', 'fitness', 'weight')

    def __init__(self,
                 values: ArrayType,
                 fitness: float = np.nan,
                 weight: float = 0.0
                 ) -> None:
        self.values = np.array(values, dtype=float)
        self.fitness = float(fitness)
        self.weight = float(weight)

    def __repr__(self) -> str:
        return f"ParameterSet(values={self.values!r}, " + \
            f"fitness={self.fitness!r}, weight={self.weight!r})"

    def copy(self) -> "ParameterSet":
        """Return a copy of the parameter set."""
        return ParameterSet(self.values, self.fitness, self.weight)


class OptimizerState:
    """The mutable state of an optimization run.

    Attributes
    ----------
    iterations : int
       The number of iterations of the algorithm.
    function_evaluations : int
       The number of times the objective function has been called.
    status : OptimizationStatus
       The status of the run.
    best_parameter_set : ParameterSet or None
       The best location found so far (in the internal, minimization,
       convention).
    parameter_set_trace : list of ParameterSet
       The best parameter set after each function evaluation.

    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Clear the results of any previous run."""
        self.iterations = 0
        self.function_evaluations = 0
        self.status = OptimizationStatus.NONE
        self.best_parameter_set: ParameterSet | None = None
        self.parameter_set_trace: list[ParameterSet] = []
        self._cancelled = False

    def cancel(self) -> None:
        """Signal that no more function evaluations should be made."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        """Has the run been cancelled?"""
        return self._cancelled


def repair_parameter(value: float,
                     lower: float,
                     upper: float
                     ) -> float:
    """Clamp a value so that it lies within [lower, upper].

    The repair is idempotent: a value within the range is returned
    unchanged.
    """

    if value < lower:
        return lower
    if value > upper:
        return upper
    return value


def repair_parameters(values: ArrayType,
                      lower: ArrayType,
                      upper: ArrayType
                      ) -> np.ndarray:
    """Clamp each element of values to its [lower, upper] range."""
    return np.minimum(np.maximum(np.asarray(values, dtype=float), lower),
                      upper)


def check_convergence(old: float,
                      new: float,
                      abstol: float,
                      reltol: float
                      ) -> bool:
    """Are two successive fitness values close enough?

    The values have converged when

        |old - new| <= abstol + reltol * |old|

    A NaN or infinite value never converges.
    """

    if not (np.isfinite(old) and np.isfinite(new)):
        return False

    return bool(abs(old - new) <= abstol + reltol * abs(old))


def _check_size(name: str, values: np.ndarray, npar: int) -> None:
    if values.ndim != 1 or values.size != npar:
        raise OptimizerErr('badsize', name, npar, values.size)


def check_bounds(npar: int,
                 lower: ArrayType,
                 upper: ArrayType,
                 initial: ArrayType | None = None,
                 *,
                 strict: bool = False
                 ) -> tuple[np.ndarray, np.ndarray, np.ndarray | None]:
    """Validate the bounds (and starting values) of an optimizer.

    Parameters
    ----------
    npar : int
       The number of parameters.
    lower, upper : sequence of number
       The bounds for each parameter.
    initial : sequence of number or None, optional
       The starting location, which must lie within the bounds.
    strict : bool, optional
       When set the upper bound must be larger than the lower bound,
       otherwise the two can be equal.

    Returns
    -------
    lower, upper, initial : ndarray
       The arguments converted to float arrays (copies). The initial
       value is None if not given.

    Raises
    ------
    numopt.utils.err.OptimizerErr
       The arguments do not match npar or are invalid.

    """

    lo = np.array(lower, dtype=float)
    hi = np.array(upper, dtype=float)
    _check_size('lower_bounds', lo, npar)
    _check_size('upper_bounds', hi, npar)

    for idx, (lval, hval) in enumerate(zip(lo, hi)):
        if strict and hval <= lval:
            raise OptimizerErr('badbounds', hval, lval, idx)
        if hval < lval:
            raise OptimizerErr('invertedbounds', hval, lval, idx)

    if initial is None:
        return lo, hi, None

    x0 = np.array(initial, dtype=float)
    _check_size('initial_values', x0, npar)
    for idx, (xval, lval, hval) in enumerate(zip(x0, lo, hi)):
        if xval < lval or xval > hval:
            raise OptimizerErr('outside', xval, idx, lval, hval)

    return lo, hi, x0


def _check_range(name: str,
                 value: float,
                 low: float,
                 high: float,
                 *,
                 include_low: bool = True,
                 include_high: bool = True
                 ) -> None:
    """Raise OptimizerErr unless low <= value <= high.

    The end points can be excluded.
    """

    lok = value >= low if include_low else value > low
    hok = value <= high if include_high else value < high
    if lok and hok:
        return

    lchar = '[' if include_low else '('
    hchar = ']' if include_high else ')'
    raise OptimizerErr('range', name, f"{lchar}{low}, {high}{hchar}",
                       value)


def _check_minimum(name: str, value: float, low: float) -> None:
    """Raise OptimizerErr unless value >= low."""
    if value < low:
        raise OptimizerErr('toosmall', name, low, value)


class Optimizer:
    """Base optimization class.

    Sub-classes implement the `_optimize` method, which runs the
    algorithm. They must call the objective function only through
    `evaluate`, check `cancelled` after each call (returning
    immediately if it is set), use `check_convergence` to decide
    when to stop, and record how the run ended with `update_status`.

    Parameters
    ----------
    func : callable
       The objective function. It is called with an ndarray of
       length npar and returns a scalar.
    npar : int
       The number of parameters.
    max_iterations : int or None, optional
       The maximum number of iterations of the algorithm. If None
       the configuration default is used (10000).
    max_function_evaluations : int or None, optional
       The maximum number of function evaluations. If None the
       configuration default (no limit) is used.
    relative_tolerance, absolute_tolerance : number or None, optional
       The convergence tolerances, which must lie in (0, 1]. If None
       the configuration default (1e-8) is used.
    report_failure : bool or None, optional
       Should a warning be logged when a budget is exhausted, and
       numerical failures re-raised?
    record_traces : bool or None, optional
       Should `parameter_set_trace` be filled in?

    Attributes
    ----------
    parent : Optimizer or None
       The optimizer that created this one to solve a sub-problem. If
       the parent run is cancelled then so is this one.
    failure : Exception or None
       The numerical error that stopped the last run, if any.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 *,
                 max_iterations: int | None = None,
                 max_function_evaluations: int | None = None,
                 relative_tolerance: float | None = None,
                 absolute_tolerance: float | None = None,
                 report_failure: bool | None = None,
                 record_traces: bool | None = None
                 ) -> None:

        if npar < 1:
            raise OptimizerErr('npar', npar)

        self.func = func
        self.npar = int(npar)

        def pick(value, default):
            return default if value is None else value

        self.max_iterations = pick(max_iterations, _MAX_ITERATIONS)
        self.max_function_evaluations = pick(max_function_evaluations,
                                             _MAX_FUNCTION_EVALUATIONS)
        self.relative_tolerance = pick(relative_tolerance,
                                       _RELATIVE_TOLERANCE)
        self.absolute_tolerance = pick(absolute_tolerance,
                                       _ABSOLUTE_TOLERANCE)
        self.report_failure = pick(report_failure, _REPORT_FAILURE)
        self.record_traces = pick(record_traces, _RECORD_TRACES)

        self.state = OptimizerState()
        self.parent: Optimizer | None = None
        self.failure: Exception | None = None
        self._scale = 1.0

    def __repr__(self) -> str:
        return f"<{type(self).__name__} optimizer instance>"

    @property
    def func(self) -> ObjectiveFunc:
        """The objective function."""
        return self._func

    @func.setter
    def func(self, func: ObjectiveFunc) -> None:
        if not callable(func):
            raise OptimizerErr('noncall', 'objective function')
        self._func = func

    @property
    def iterations(self) -> int:
        """The number of iterations of the last run."""
        return self.state.iterations

    @property
    def function_evaluations(self) -> int:
        """The number of function evaluations of the last run."""
        return self.state.function_evaluations

    @property
    def status(self) -> OptimizationStatus:
        """How did the last run end?"""
        return self.state.status

    @property
    def best_parameter_set(self) -> ParameterSet | None:
        """The best location found by the last run."""
        return self.state.best_parameter_set

    @property
    def parameter_set_trace(self) -> list[ParameterSet]:
        """The best location after each function evaluation."""
        return self.state.parameter_set_trace

    @property
    def cancelled(self) -> bool:
        """Has this run, or the run that started it, been cancelled?"""
        if self.state.cancelled:
            return True
        return self.parent is not None and self.parent.cancelled

    def validate(self) -> None:
        """Check the settings before a run.

        Raises
        ------
        numopt.utils.err.OptimizerErr
           A setting is invalid.

        """

        _check_minimum('max_iterations', self.max_iterations, 10)
        _check_minimum('max_function_evaluations',
                       self.max_function_evaluations, 10)
        _check_range('relative_tolerance', self.relative_tolerance,
                     0, 1, include_low=False)
        _check_range('absolute_tolerance', self.absolute_tolerance,
                     0, 1, include_low=False)

    def minimize(self) -> ParameterSet | None:
        """Find the minimum of the objective function.

        Returns
        -------
        best : ParameterSet
           The best location found, which is also available as
           `best_parameter_set`.

        """
        return self._run(1.0)

    def maximize(self) -> ParameterSet | None:
        """Find the maximum of the objective function.

        The optimizer minimizes the negative of the objective function,
        but the fitness values reported at the end of the run (in
        `best_parameter_set` and `parameter_set_trace`) are those of
        the objective function.

        Returns
        -------
        best : ParameterSet
           The best location found, which is also available as
           `best_parameter_set`.

        """
        return self._run(-1.0)

    def _run(self, scale: float) -> ParameterSet | None:
        self.validate()
        self.state.reset()
        self.failure = None
        self._scale = scale

        name = type(self).__name__
        debug("%s: starting run with %d parameters", name, self.npar)
        try:
            self._optimize()
        except ArithmeticError as exc:
            self.failure = exc
            self.update_status(OptimizationStatus.FAILURE)
            if self.report_failure:
                raise

            warning("%s: %s", name, exc)
        finally:
            self._finish()

        debug("%s: %s after %d iterations and %d function evaluations",
              name, self.state.status.name, self.state.iterations,
              self.state.function_evaluations)
        return self.state.best_parameter_set

    def _finish(self) -> None:
        """Convert the results back to the caller's sign convention."""

        if self._scale > 0:
            return

        best = self.state.best_parameter_set
        if best is not None:
            best.fitness *= self._scale

        for pset in self.state.parameter_set_trace:
            pset.fitness *= self._scale

    def _optimize(self) -> None:
        raise NotImplementedError

    def evaluate(self, values: ArrayType) -> float:
        """Evaluate the objective function.

        This is the only way the algorithms call the objective
        function. It returns the fitness (negated when maximizing),
        records the best location, and cancels the run when the
        function-evaluation budget is used up. Once the run has been
        cancelled the objective function is no longer called, and
        the return value is +inf.

        Parameters
        ----------
        values : sequence of number
           The parameter values.

        Returns
        -------
        fitness : number

        """

        if self.cancelled:
            return np.inf

        state = self.state
        pars = np.asarray(values, dtype=float)
        fitness = self._scale * float(self._func(pars))

        self.update_best(pars, fitness)
        if self.record_traces and state.best_parameter_set is not None:
            state.parameter_set_trace.append(state.best_parameter_set.copy())

        state.function_evaluations += 1
        if state.function_evaluations >= self.max_function_evaluations:
            self.update_status(OptimizationStatus.MAXIMUM_FUNCTION_EVALUATIONS_REACHED)
            state.cancel()

        return fitness

    def update_best(self, values: np.ndarray, fitness: float) -> None:
        """Replace the best location if fitness is not worse."""

        best = self.state.best_parameter_set
        if best is None or np.isnan(best.fitness) or fitness <= best.fitness:
            self.state.best_parameter_set = ParameterSet(values, fitness)

    def check_convergence(self, old: float, new: float) -> bool:
        """Are the two fitness values within the tolerances?"""
        return check_convergence(old, new, self.absolute_tolerance,
                                 self.relative_tolerance)

    def update_status(self, status: OptimizationStatus) -> None:
        """Record how the run ended."""

        self.state.status = status
        if not self.report_failure:
            return

        if status == OptimizationStatus.MAXIMUM_ITERATIONS_REACHED:
            msg = _BUDGET_MESSAGES[status] % self.max_iterations
        elif status == OptimizationStatus.MAXIMUM_FUNCTION_EVALUATIONS_REACHED:
            msg = _BUDGET_MESSAGES[status] % self.max_function_evaluations
        else:
            return

        warning("%s: %s", type(self).__name__, msg)


class BoundedOptimizer(Optimizer):
    """An optimizer with box constraints on the parameters.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    lower_bounds, upper_bounds : sequence of number
       The bounds of each parameter. Unbounded parameters can use
       -inf and +inf, but not all algorithms support this.
    initial_values : sequence of number or None, optional
       The starting location, which must be within the bounds.
    strict : bool, optional
       Must the upper bounds be larger than the lower bounds?
    **kwargs
       Sent to `Optimizer`.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 initial_values: ArrayType | None = None,
                 *,
                 strict: bool = False,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, **kwargs)
        lo, hi, x0 = check_bounds(self.npar, lower_bounds, upper_bounds,
                                  initial_values, strict=strict)
        self.lower_bounds = lo
        self.upper_bounds = hi
        self.initial_values = x0

    def repair(self, values: ArrayType) -> np.ndarray:
        """Clamp the values to the bounds."""
        return repair_parameters(values, self.lower_bounds,
                                 self.upper_bounds)


class PopulationOptimizer(BoundedOptimizer):
    """A stochastic optimizer.

    The generator is re-created from `seed` at the start of each run,
    so repeated runs give identical results.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    lower_bounds, upper_bounds : sequence of number
       The bounds of each parameter. The upper bound must be larger
       than the lower bound, unless `strict_bounds` is False.
    initial_values : sequence of number or None, optional
       The starting location, for those algorithms that use one.
    seed : int or None, optional
       The seed for the random-number generator. If not set then the
       configuration default (12345) is used.
    **kwargs
       Sent to `Optimizer`.

    Attributes
    ----------
    rng : numpy.random.Generator or None
       The generator for the current (or last) run.

    """

    # Must the upper bound be larger than the lower bound?
    strict_bounds = True

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 initial_values: ArrayType | None = None,
                 *,
                 seed: int | None = None,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         initial_values, strict=self.strict_bounds, **kwargs)
        self.seed = DEFAULT_SEED if seed is None else seed
        self.rng: np.random.Generator | None = None

    def population_std_converged(self, fitness: Sequence[float]) -> bool:
        """Is the spread of the population fitness within tolerance?

        The population has converged when its standard deviation is
        below ``absolute_tolerance + relative_tolerance * |mean|``.
        """

        fvals = np.asarray(fitness, dtype=float)
        if not np.all(np.isfinite(fvals)):
            return False

        mean = np.mean(fvals)
        stddev = np.std(fvals, ddof=1) if fvals.size > 1 else 0.0
        return bool(stddev < self.absolute_tolerance +
                    self.relative_tolerance * abs(mean))
