#
#  Copyright (C) 2007, 2015, 2016, 2018 - 2020, 2024
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

"""Tests of the local optimizers."""

import logging

import numpy as np

import pytest

from numopt.optmethods import ADAM, BFGS, BrentSearch, GoldenSection, \
    GradientDescent, NelderMead, OptimizationStatus, Powell
from numopt.optmethods.simplex import Simplex
from numopt.optmethods.testfunctions import booth, dejong, fx, fxyz, \
    matyas, rosenbrock
from numopt.utils.err import NumericalErr, OptimizerErr


FXYZ_MIN = [0.125, 0.2, 0.35]


def rosenbrock_gradient(x):
    return np.asarray([-400 * x[0] * (x[1] - x[0]**2) - 2 * (1 - x[0]),
                       200 * (x[1] - x[0]**2)])


@pytest.mark.parametrize("opt", [BrentSearch, GoldenSection])
def test_univariate_minimize(opt):

    solver = opt(fx, -3, 3)
    best = solver.minimize()
    assert solver.status == OptimizationStatus.SUCCESS
    assert solver.best_x == pytest.approx(1, abs=1e-4)
    assert best.fitness == pytest.approx(0, abs=1e-4)
    assert best.values.shape == (1, )


@pytest.mark.parametrize("opt", [BrentSearch, GoldenSection])
def test_univariate_maximize(opt):

    solver = opt(fx, -3, 3)
    best = solver.maximize()
    assert solver.status == OptimizationStatus.SUCCESS
    assert solver.best_x == pytest.approx(-5 / 3, abs=1e-4)
    assert best.fitness == pytest.approx(256 / 27, abs=1e-4)


def test_univariate_checks_bounds():

    with pytest.raises(OptimizerErr,
                       match=r"^the upper bound \(-3\) cannot be less than the lower bound \(3\) for parameter 0$"):
        BrentSearch(fx, 3, -3)


def test_univariate_checks_func():

    with pytest.raises(OptimizerErr,
                       match="^the objective function must be callable$"):
        GoldenSection(3, -3, 3)


def test_best_x_before_a_run():
    assert np.isnan(BrentSearch(fx, -3, 3).best_x)


def test_brent_is_faster_than_golden():

    brent = BrentSearch(fx, -3, 3)
    brent.minimize()
    golden = GoldenSection(fx, -3, 3)
    golden.minimize()
    assert brent.function_evaluations < golden.function_evaluations


def test_bracket():

    def func(x):
        return (x - 10)**2

    solver = BrentSearch(func, 0, 1)
    solver.bracket()
    assert solver.lower < 10 < solver.upper

    solver.minimize()
    assert solver.best_x == pytest.approx(10, abs=1e-6)


def test_bracket_reverses_direction():

    def func(x):
        return (x + 4)**2

    solver = BrentSearch(func, 0, 1)
    solver.bracket(step=0.5)
    assert solver.lower < -4 < solver.upper


def test_simplex_sort():

    simp = np.asarray([[1, 2], [3, 4], [5, 6]])
    fvals = np.asarray([3, 1, 2])
    ssimp, sfvals = Simplex.sort_me(simp, fvals)
    assert sfvals == pytest.approx([1, 2, 3])
    assert ssimp == pytest.approx(np.asarray([[3, 4], [5, 6], [1, 2]]))


def test_simplex_centroid_and_move():

    simp = Simplex(dejong, lambda x: x,
                   np.asarray([[0, 0], [2, 0], [0, 2]]))
    centroid = simp.calc_centroid()
    assert centroid == pytest.approx([1, 0])

    vertex, fval = simp.move_vertex(centroid, 1.0)
    assert vertex == pytest.approx([2, -2])
    assert fval == pytest.approx(8)

    # The worst vertex is not replaced by move_vertex.
    assert simp[2] == pytest.approx([0, 2])


def test_initial_simplex():

    opt = NelderMead(dejong, 3, [0, 2, 10], [-10, -10, -10],
                     [10, 10, 10])
    simp = opt.initial_simplex()
    expected = [[0, 2, 10],
                [2.5e-4, 2, 10],
                [0, 2.1, 10],
                [0, 2, 10]]
    assert simp == pytest.approx(np.asarray(expected))


@pytest.mark.parametrize("func,x0,lo,hi,expected",
                         [(booth, [0, 0], [-10, -10], [10, 10], [1, 3]),
                          (matyas, [1, -1], [-10, -10], [10, 10], [0, 0]),
                          (fxyz, [0.2, 0.5, 0.5], [0, 0, 0], [1, 1, 1],
                           FXYZ_MIN)])
def test_neldermead(func, x0, lo, hi, expected):

    opt = NelderMead(func, len(x0), x0, lo, hi)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx(expected, abs=1e-2)
    assert best.fitness == pytest.approx(0, abs=1e-6)


def test_neldermead_respects_bounds():

    # The minimum of booth is outside this box.
    opt = NelderMead(booth, 2, [0, 0], [-2, -2], [2, 2])
    best = opt.minimize()

    assert np.all(best.values >= -2)
    assert np.all(best.values <= 2)
    for pset in opt.parameter_set_trace:
        assert np.all(np.abs(pset.values) <= 2)

    assert best.values[1] == pytest.approx(2, abs=5e-2)


@pytest.mark.parametrize("func,x0,lo,hi,expected",
                         [(booth, [0, 0], [-10, -10], [10, 10], [1, 3]),
                          (fxyz, [0.2, 0.5, 0.5], [0, 0, 0], [1, 1, 1],
                           FXYZ_MIN),
                          (dejong, [1, -1, 2, -2, 1], [-5.12] * 5,
                           [5.12] * 5, [0] * 5)])
def test_powell(func, x0, lo, hi, expected):

    opt = Powell(func, len(x0), x0, lo, hi)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx(expected, abs=1e-3)
    assert best.fitness == pytest.approx(0, abs=1e-6)


def test_powell_rosenbrock():

    opt = Powell(rosenbrock, 2, [-1.2, 1], [-10, -10], [10, 10])
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([1, 1], abs=1e-2)


@pytest.mark.parametrize("func,x0,lo,hi,expected",
                         [(fxyz, [0.2, 0.5, 0.5], [0, 0, 0], [1, 1, 1],
                           FXYZ_MIN),
                          (dejong, [1, -1, 2, -2, 1], [-5.12] * 5,
                           [5.12] * 5, [0] * 5),
                          (rosenbrock, [0, 0], [-2.048, -2.048],
                           [2.048, 2.048], [1, 1]),
                          (booth, [0, 0], [-10, -10], [10, 10], [1, 3]),
                          (matyas, [1, -1], [-10, -10], [10, 10], [0, 0])])
def test_bfgs(func, x0, lo, hi, expected):

    opt = BFGS(func, len(x0), x0, lo, hi)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx(expected, abs=1e-4)
    assert best.fitness == pytest.approx(0, abs=1e-4)


def test_bfgs_unbounded_with_gradient():

    opt = BFGS(rosenbrock, 2, [-1.2, 1], [-np.inf, -np.inf],
               [np.inf, np.inf], gradient=rosenbrock_gradient)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([1, 1], abs=1e-4)

    # The numerical gradient needs more function evaluations.
    nfev = opt.function_evaluations
    opt.gradient = None
    opt.minimize()
    assert opt.best_parameter_set.values == pytest.approx([1, 1], abs=1e-4)
    assert opt.function_evaluations > nfev


def test_bfgs_maximize_with_gradient():

    def func(x):
        return 4 - booth(x)

    def grad(x):
        a = x[0] + 2 * x[1] - 7
        b = 2 * x[0] + x[1] - 5
        return [-2 * a - 4 * b, -4 * a - 2 * b]

    opt = BFGS(func, 2, [0, 0], [-10, -10], [10, 10], gradient=grad)
    best = opt.maximize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([1, 3], abs=1e-4)
    assert best.fitness == pytest.approx(4)


def test_gradient_must_be_callable():

    with pytest.raises(OptimizerErr, match="^the gradient must be callable$"):
        BFGS(dejong, 2, [0, 0], [-1, -1], [1, 1], gradient=[1, 2])


def test_gradient_must_match_npar():

    opt = BFGS(dejong, 2, [1, 1], [-5, -5], [5, 5],
               gradient=lambda x: [1, 2, 3])
    with pytest.raises(OptimizerErr,
                       match="^gradient must have 2 elements, not 3$"):
        opt.minimize()


def test_gradient_descent():

    opt = GradientDescent(dejong, 2, [1, 1], [-5, -5], [5, 5], 0.1)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([0, 0], abs=1e-3)


def test_gradient_descent_bounds():

    opt = GradientDescent(booth, 2, [0, 0], [-2, -2], [2, 2], 0.01)
    best = opt.minimize()
    assert np.all(np.abs(best.values) <= 2)
    assert best.values[1] == pytest.approx(2)


def test_adam():

    opt = ADAM(dejong, 2, [1, -1], [-5, -5], [5, 5], 0.05,
               max_iterations=20000, report_failure=False)
    best = opt.minimize()
    assert best.values == pytest.approx([0, 0], abs=0.1)
    assert best.fitness < 1e-2


@pytest.mark.parametrize("opt", [GradientDescent, ADAM])
def test_alpha_must_be_positive(opt):

    solver = opt(dejong, 1, [1], [-5], [5], 0)
    with pytest.raises(OptimizerErr,
                       match=r"^alpha must be in the range \(0, inf\], not 0$"):
        solver.minimize()


@pytest.mark.parametrize("attr", ["beta1", "beta2"])
def test_adam_beta(attr):

    solver = ADAM(dejong, 1, [1], [-5], [5])
    setattr(solver, attr, 1)
    with pytest.raises(OptimizerErr,
                       match=rf"^{attr} must be in the range \[0, 1\), not 1$"):
        solver.minimize()


def undefined_above_five(value):
    """(x - 3)^2, which can not be evaluated for x >= 5."""

    def func(x):
        if x[0] < 5:
            return (x[0] - 3)**2
        return value

    return func


@pytest.mark.parametrize("value", [np.nan, np.inf])
def test_bfgs_nonfinite_region(value):

    opt = BFGS(undefined_above_five(value), 1, [0], [-10], [10],
               max_function_evaluations=100000)
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([3], abs=1e-4)
    assert opt.function_evaluations < 100


@pytest.mark.parametrize("value", [np.nan, np.inf])
def test_bfgs_nonfinite_start(value):

    opt = BFGS(undefined_above_five(value), 1, [6], [-10], [10],
               report_failure=True)
    with pytest.raises(NumericalErr,
                       match="^the function value or gradient is not finite at the start of the line search$"):
        opt.minimize()

    assert opt.status == OptimizationStatus.FAILURE

    opt.report_failure = False
    opt.minimize()
    assert opt.status == OptimizationStatus.FAILURE
    assert isinstance(opt.failure, NumericalErr)


@pytest.mark.parametrize("value", [np.nan, np.inf])
def test_neldermead_nonfinite_region(value):

    opt = NelderMead(undefined_above_five(value), 1, [0], [-10], [10])
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values == pytest.approx([3], abs=1e-3)
    assert np.isfinite(best.fitness)


def test_bfgs_stalls_at_a_kink(caplog):
    """The slope changes from -2 to 1 at x=0."""

    def func(x):
        return -2 * x[0] if x[0] < 0 else x[0]

    opt = BFGS(func, 1, [0], [-1], [1], report_failure=True)
    with caplog.at_level(logging.WARNING, logger='numopt'):
        best = opt.minimize()

    assert opt.status == OptimizationStatus.FAILURE
    assert best.values == pytest.approx([0])
    assert best.fitness == pytest.approx(0)

    assert len(caplog.records) == 1
    name, lvl, msg = caplog.record_tuples[0]
    assert name == 'numopt.optmethods.quasinewton'
    assert lvl == logging.WARNING
    assert msg == 'BFGS: the line search can not decrease the function at [0.]'


def test_bfgs_stops_at_a_bound():

    opt = BFGS(booth, 2, [0, 0], [-2, -2], [2, 2])
    best = opt.minimize()
    assert opt.status == OptimizationStatus.SUCCESS
    assert best.values[1] == pytest.approx(2)
