#
#  Copyright (C) 2019 - 2021, 2023, 2024
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

"""Tests of the shared optimizer machinery."""

import logging

import numpy as np

import pytest

from numopt.optmethods import BFGS, BrentSearch, DifferentialEvolution, \
    NelderMead, OptimizationStatus, ParameterSet
from numopt.optmethods.opt import DEFAULT_SEED, Optimizer, \
    check_bounds, check_convergence, repair_parameter, repair_parameters
from numopt.optmethods.testfunctions import booth, dejong, fx, rosenbrock
from numopt.utils.err import NumericalErr, OptimizerErr


SEED = 2354


def counted(func):
    """Wrap func so the number of calls is recorded in ncalls."""

    def wrapped(x):
        wrapped.ncalls += 1
        return func(x)

    wrapped.ncalls = 0
    return wrapped


def test_parameter_set_copies_values():

    vals = np.asarray([1.0, 2.0])
    pset = ParameterSet(vals, 3.0)
    vals[0] = 10

    assert pset.values == pytest.approx([1, 2])
    assert pset.fitness == 3.0
    assert pset.weight == 0.0

    cpy = pset.copy()
    cpy.values[1] = -4
    assert pset.values == pytest.approx([1, 2])


def test_parameter_set_defaults_to_nan():
    assert np.isnan(ParameterSet([1]).fitness)


@pytest.mark.parametrize("value,expected",
                         [(-3, -1), (-1, -1), (0.5, 0.5), (2, 2), (4, 2)])
def test_repair_parameter(value, expected):
    assert repair_parameter(value, -1, 2) == expected


def test_repair_parameters_is_idempotent():

    lo = np.asarray([0, 0, -np.inf])
    hi = np.asarray([1, 2, np.inf])
    once = repair_parameters([-1, 3, 1e10], lo, hi)
    assert once == pytest.approx([0, 2, 1e10])
    assert repair_parameters(once, lo, hi) == pytest.approx(once)


@pytest.mark.parametrize("old,new,expected",
                         [(1.0, 1.0, True),
                          (1.0, 1.0 + 1e-9, True),
                          (1.0, 1.1, False),
                          (1e10, 1e10 + 10, True),
                          (0.0, 1e-9, True),
                          (np.nan, 1.0, False),
                          (1.0, np.nan, False),
                          (np.inf, np.inf, False)])
def test_check_convergence(old, new, expected):
    assert check_convergence(old, new, 1e-8, 1e-8) == expected


def test_check_bounds_returns_copies():

    lo = [0, 1]
    lower, upper, x0 = check_bounds(2, lo, [1, 2], [0.5, 1])
    lower[0] = 5
    assert lo == [0, 1]
    assert upper == pytest.approx([1, 2])
    assert x0 == pytest.approx([0.5, 1])


def test_check_bounds_no_initial():
    _, _, x0 = check_bounds(1, [0], [1])
    assert x0 is None


def test_check_bounds_allows_equal_bounds():
    lower, upper, _ = check_bounds(2, [0, 1], [0, 2])
    assert lower == pytest.approx(upper - [0, 1])


@pytest.mark.parametrize("lower,upper,initial,msg",
                         [([0, 0, 0], [1, 1], None,
                           "^lower_bounds must have 2 elements, not 3$"),
                          ([0, 0], [1], None,
                           "^upper_bounds must have 2 elements, not 1$"),
                          ([0, 0], [1, 1], [0.5],
                           "^initial_values must have 2 elements, not 1$"),
                          ([0, 2], [1, 1], None,
                           r"^the upper bound \(1\) cannot be less than the lower bound \(2\) for parameter 1$"),
                          ([0, 0], [2, 2], [1, 3],
                           r"^initial value 3 for parameter 1 is outside the bounds \[0, 2\]$")
                          ])
def test_check_bounds_errors(lower, upper, initial, msg):

    with pytest.raises(OptimizerErr, match=msg):
        check_bounds(2, lower, upper, initial)


def test_check_bounds_strict():

    with pytest.raises(OptimizerErr,
                       match=r"^the upper bound \(1\) must be larger than the lower bound \(1\) for parameter 0$"):
        check_bounds(1, [1], [1], strict=True)


def test_npar_must_be_positive():

    with pytest.raises(OptimizerErr,
                       match="^there must be at least 1 parameter, not 0$"):
        Optimizer(dejong, 0)


def test_func_must_be_callable():

    with pytest.raises(OptimizerErr,
                       match="^the objective function must be callable$"):
        NelderMead(None, 1, [0], [-1], [1])


def test_stochastic_optimizers_need_strict_bounds():

    with pytest.raises(OptimizerErr, match="must be larger than"):
        DifferentialEvolution(dejong, 2, [0, 1], [1, 1])


def test_defaults():

    opt = NelderMead(dejong, 1, [0], [-1], [1])
    assert opt.max_iterations == 10000
    assert opt.max_function_evaluations > 1e9
    assert opt.relative_tolerance == pytest.approx(1e-8)
    assert opt.absolute_tolerance == pytest.approx(1e-8)
    assert opt.report_failure
    assert opt.record_traces
    assert opt.status == OptimizationStatus.NONE
    assert opt.best_parameter_set is None
    assert opt.iterations == 0
    assert opt.function_evaluations == 0
    assert opt.parameter_set_trace == []


def test_default_seed():
    opt = DifferentialEvolution(dejong, 1, [0], [1])
    assert opt.seed == DEFAULT_SEED


@pytest.mark.parametrize("attr,value,msg",
                         [("max_iterations", 5,
                           "^max_iterations must be at least 10, not 5$"),
                          ("max_function_evaluations", 9,
                           "^max_function_evaluations must be at least 10, not 9$"),
                          ("relative_tolerance", 0,
                           r"^relative_tolerance must be in the range \(0, 1\], not 0$"),
                          ("absolute_tolerance", 2,
                           r"^absolute_tolerance must be in the range \(0, 1\], not 2$")
                          ])
def test_validate_settings(attr, value, msg):

    ncalls = counted(dejong)
    opt = NelderMead(ncalls, 1, [0], [-1], [1])
    setattr(opt, attr, value)
    with pytest.raises(OptimizerErr, match=msg):
        opt.minimize()

    assert ncalls.ncalls == 0


def test_evaluate_tracks_the_best_location():

    opt = NelderMead(dejong, 2, [0, 0], [-5, -5], [5, 5])
    assert opt.evaluate([1, 1]) == pytest.approx(2)
    assert opt.evaluate([2, 2]) == pytest.approx(8)
    assert opt.evaluate([0, 1]) == pytest.approx(1)

    assert opt.function_evaluations == 3
    assert opt.best_parameter_set.values == pytest.approx([0, 1])
    assert opt.best_parameter_set.fitness == pytest.approx(1)

    trace = [p.fitness for p in opt.parameter_set_trace]
    assert trace == pytest.approx([2, 2, 1])


def test_evaluate_replaces_a_nan_best():

    vals = iter([np.nan, 10.0, 12.0])
    opt = NelderMead(lambda x: next(vals), 1, [0], [-5], [5])
    opt.evaluate([1])
    assert np.isnan(opt.best_parameter_set.fitness)

    opt.evaluate([2])
    opt.evaluate([3])
    assert opt.best_parameter_set.fitness == 10
    assert opt.best_parameter_set.values == pytest.approx([2])


def test_no_trace():

    opt = NelderMead(booth, 2, [0, 0], [-10, -10], [10, 10],
                     record_traces=False)
    opt.minimize()
    assert opt.parameter_set_trace == []
    assert opt.function_evaluations > 10


def test_trace_matches_evaluations():

    opt = NelderMead(booth, 2, [0, 0], [-10, -10], [10, 10])
    opt.minimize()
    trace = opt.parameter_set_trace
    assert len(trace) == opt.function_evaluations

    # The trace never gets worse.
    fvals = np.asarray([p.fitness for p in trace])
    assert np.all(np.diff(fvals) <= 0)
    assert fvals[-1] == opt.best_parameter_set.fitness


def test_function_evaluation_budget(caplog):

    func = counted(rosenbrock)
    opt = NelderMead(func, 2, [-1.2, 1], [-10, -10], [10, 10],
                     max_function_evaluations=20)
    with caplog.at_level(logging.WARNING, logger='numopt'):
        best = opt.minimize()

    assert opt.status == OptimizationStatus.MAXIMUM_FUNCTION_EVALUATIONS_REACHED
    assert opt.function_evaluations == 20
    assert func.ncalls == 20
    assert len(opt.parameter_set_trace) == 20
    assert best is opt.best_parameter_set
    assert best.fitness < 24.2

    assert len(caplog.records) == 1
    name, lvl, msg = caplog.record_tuples[0]
    assert name == 'numopt.optmethods.opt'
    assert lvl == logging.WARNING
    assert msg == 'NelderMead: the maximum number of function evaluations (20) has been reached'


def test_iteration_budget(caplog):

    opt = NelderMead(rosenbrock, 2, [-1.2, 1], [-10, -10], [10, 10],
                     max_iterations=10)
    with caplog.at_level(logging.WARNING, logger='numopt'):
        opt.minimize()

    assert opt.status == OptimizationStatus.MAXIMUM_ITERATIONS_REACHED
    assert opt.iterations == 10

    assert len(caplog.records) == 1
    assert caplog.record_tuples[0][2] == 'NelderMead: the maximum number of iterations (10) has been reached'


def test_budget_no_report(caplog):

    opt = NelderMead(rosenbrock, 2, [-1.2, 1], [-10, -10], [10, 10],
                     max_iterations=10, report_failure=False)
    with caplog.at_level(logging.WARNING, logger='numopt'):
        opt.minimize()

    assert opt.status == OptimizationStatus.MAXIMUM_ITERATIONS_REACHED
    assert len(caplog.records) == 0


def test_run_resets_state():

    opt = NelderMead(booth, 2, [0, 0], [-10, -10], [10, 10])
    opt.minimize()
    nfev = opt.function_evaluations
    best = opt.best_parameter_set.values.copy()

    opt.minimize()
    assert opt.function_evaluations == nfev
    assert len(opt.parameter_set_trace) == nfev
    assert opt.best_parameter_set.values == pytest.approx(best)


def test_maximize_reports_the_caller_sign():

    def func(x):
        return 3 - (x - 2)**2

    opt = BrentSearch(func, 0, 5)
    best = opt.maximize()

    assert opt.status == OptimizationStatus.SUCCESS
    assert opt.best_x == pytest.approx(2, abs=1e-6)
    assert best.fitness == pytest.approx(3)

    fvals = np.asarray([p.fitness for p in opt.parameter_set_trace])
    assert np.all(fvals <= 3)
    assert np.all(np.diff(fvals) >= 0)
    assert fvals[-1] == best.fitness


def test_maximize_then_minimize():

    opt = BrentSearch(fx, -3, 3)
    opt.maximize()
    assert opt.best_x == pytest.approx(-5 / 3, abs=1e-4)
    assert opt.best_parameter_set.fitness == pytest.approx(256 / 27)

    opt.minimize()
    assert opt.best_x == pytest.approx(1, abs=1e-4)
    assert opt.best_parameter_set.fitness == pytest.approx(0, abs=1e-8)


def test_maximize_multiple_parameters():

    def negdejong(x):
        return -dejong(x)

    opt = NelderMead(negdejong, 2, [1, 2], [-5, -5], [5, 5])
    best = opt.maximize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.fitness <= 0
    assert best.fitness == pytest.approx(0, abs=1e-6)


def fail_after(n):
    """Raise ZeroDivisionError after n calls."""

    def func(x):
        func.ncalls += 1
        if func.ncalls > n:
            raise ZeroDivisionError("bad denominator")
        return dejong(x)

    func.ncalls = 0
    return func


def test_numerical_failure_is_raised():

    opt = NelderMead(fail_after(4), 2, [1, 1], [-5, -5], [5, 5])
    with pytest.raises(ZeroDivisionError, match="^bad denominator$"):
        opt.minimize()

    assert opt.status == OptimizationStatus.FAILURE
    assert isinstance(opt.failure, ZeroDivisionError)
    assert opt.function_evaluations == 4


def test_numerical_failure_is_logged(caplog):

    opt = NelderMead(fail_after(4), 2, [1, 1], [-5, -5], [5, 5],
                     report_failure=False)
    with caplog.at_level(logging.WARNING, logger='numopt'):
        best = opt.minimize()

    assert opt.status == OptimizationStatus.FAILURE
    assert isinstance(opt.failure, ZeroDivisionError)
    assert best is not None
    assert best.fitness <= 2

    assert len(caplog.records) == 1
    assert caplog.record_tuples[0][2] == 'NelderMead: bad denominator'


def test_line_search_uphill():

    opt = BFGS(dejong, 2, [1, 1], [-5, -5], [5, 5])
    x = np.asarray([1.0, 1.0])
    g = 2 * x
    with pytest.raises(NumericalErr,
                       match="^roundoff problem in line search$"):
        opt.line_search(x, 2.0, g, g, 100.0)


def test_cancelled_run_does_not_call_func():

    func = counted(dejong)
    opt = NelderMead(func, 1, [1], [-2], [2])
    opt.state.cancel()

    assert opt.evaluate([1]) == np.inf
    assert func.ncalls == 0
    assert opt.function_evaluations == 0


def test_cancelled_parent():

    parent = NelderMead(dejong, 1, [1], [-2], [2])
    parent.state.cancel()

    func = counted(dejong)
    child = NelderMead(func, 1, [1], [-2], [2])
    child.parent = parent
    assert child.cancelled

    assert child.minimize() is None
    assert func.ncalls == 0
    assert child.status == OptimizationStatus.NONE


@pytest.mark.parametrize("values,expected",
                         [([1, 1, 1], True),
                          ([1, 1 + 1e-12, 1], True),
                          ([1, 2, 3], False),
                          ([1, np.inf], False),
                          ([1, np.nan], False),
                          ([5], True)])
def test_population_std_converged(values, expected):

    opt = DifferentialEvolution(dejong, 2, [-1, -1], [1, 1])
    assert opt.population_std_converged(values) == expected


def test_repeatable_with_seed():

    kwargs = {"seed": SEED, "max_iterations": 20, "report_failure": False}
    opt1 = DifferentialEvolution(booth, 2, [-10, -10], [10, 10], **kwargs)
    opt2 = DifferentialEvolution(booth, 2, [-10, -10], [10, 10], **kwargs)

    best1 = opt1.minimize().copy()
    best2 = opt2.minimize()
    assert best1.values == pytest.approx(best2.values)
    assert best1.fitness == best2.fitness

    # A repeated run restarts the generator.
    best3 = opt1.minimize()
    assert best1.values == pytest.approx(best3.values)
    assert opt1.function_evaluations == opt2.function_evaluations


def test_different_seeds():

    kwargs = {"max_iterations": 20, "report_failure": False}
    opt1 = DifferentialEvolution(booth, 2, [-10, -10], [10, 10], seed=1,
                                 **kwargs)
    opt2 = DifferentialEvolution(booth, 2, [-10, -10], [10, 10], seed=2,
                                 **kwargs)
    opt1.minimize()
    opt2.minimize()
    assert opt1.parameter_set_trace[0].values != \
        pytest.approx(opt2.parameter_set_trace[0].values)
