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

"""One-dimensional minimization: Brent's method and golden-section search.

References
----------

.. [1] Press, W. H., Teukolsky, S. A., Vetterling, W. T., & Flannery,
       B. P., "Numerical Recipes: The Art of Scientific Computing",
       Third Edition, 2007, section 10.

"""

import numpy as np

from numopt.utils.err import OptimizerErr
from numopt.utils.types import ScalarFunc

from .opt import OptimizationStatus, Optimizer


__all__ = ('BrentSearch', 'GoldenSection')


EPSILON = float(np.finfo(np.float64).eps)

# The golden ratio terms.
GOLD_R = 0.61803399
GOLD_C = 1.0 - GOLD_R
CGOLD = 0.381966


class UnivariateOptimizer(Optimizer):
    """Minimize a function of one variable within [lower, upper].

    Parameters
    ----------
    func : callable
       The function to optimize. It takes and returns a scalar.
    lower, upper : number
       The interval to search. The upper bound can not be smaller
       than the lower bound.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    """

    def __init__(self,
                 func: ScalarFunc,
                 lower: float,
                 upper: float,
                 **kwargs
                 ) -> None:
        if not callable(func):
            raise OptimizerErr('noncall', 'objective function')

        if upper < lower:
            raise OptimizerErr('invertedbounds', upper, lower, 0)

        self.scalar_func = func
        super().__init__(self._as_vector, 1, **kwargs)
        self.lower = float(lower)
        self.upper = float(upper)

    def _as_vector(self, x: np.ndarray) -> float:
        return self.scalar_func(float(x[0]))

    def evaluate_at(self, x: float) -> float:
        """Evaluate the function at a single location."""
        return self.evaluate([x])

    @property
    def best_x(self) -> float:
        """The location of the best point found by the last run."""
        best = self.best_parameter_set
        if best is None:
            return np.nan
        return float(best.values[0])


class BrentSearch(UnivariateOptimizer):
    """Brent's method for one-dimensional minimization.

    The search starts from the bracket [lower, (lower + upper) / 2,
    upper] and combines golden-section steps with inverse parabolic
    interpolation. The parabolic step is only used when it falls
    within the bracket and is smaller than half the step before last;
    otherwise a golden-section step is made.

    The run ends with SUCCESS when the bracket is smaller than the
    relative tolerance.

    Examples
    --------

    >>> opt = BrentSearch(lambda x: (x + 3) * (x - 1)**2, -3, 3)
    >>> best = opt.minimize()
    >>> round(opt.best_x, 4)
    1.0

    """

    def bracket(self, step: float = 1e-2, k: float = 2.0) -> None:
        """Find an interval containing a minimum.

        Walk from the lower bound with a step that grows by a factor
        of k each time, until the function stops decreasing. The
        `lower` and `upper` attributes are then set to the last
        bracketing pair. The walk assumes a minimization, uses the
        objective function directly (so the calls are not counted
        against the budget of the next run), and stops after
        max_iterations steps.

        Parameters
        ----------
        step : number, optional
           The first step. It is reversed if the function increases
           from the lower bound.
        k : number, optional
           The growth factor for the step.

        """

        a = self.lower
        b = a + step
        fa = self.scalar_func(a)
        fb = self.scalar_func(b)
        if fb > fa:
            a, b = b, a
            fa, fb = fb, fa
            step = -step

        c = b + step
        for _ in range(self.max_iterations):
            c = b + step
            fc = self.scalar_func(c)
            # A flat function (e.g. at a clamped parameter value) is
            # treated as having stopped decreasing.
            if not fc < fb:
                break

            a, b = b, c
            fb = fc
            step *= k

        self.lower, self.upper = (a, c) if a < c else (c, a)

    def _optimize(self) -> None:

        state = self.state
        zeps = EPSILON * 1e-3
        a = self.lower
        b = self.upper
        x = w = v = 0.5 * (a + b)
        fx = self.evaluate_at(x)
        if self.cancelled:
            return

        fw = fv = fx
        d = 0.0
        e = 0.0

        while state.iterations < self.max_iterations:
            xm = 0.5 * (a + b)
            tol1 = self.relative_tolerance * abs(x) + zeps
            tol2 = 2.0 * tol1
            if abs(x - xm) <= tol2 - 0.5 * (b - a):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            use_golden = True
            if abs(e) > tol1:
                # Fit a parabola through x, v, w.
                r = (x - w) * (fx - fv)
                q = (x - v) * (fx - fw)
                p = (x - v) * q - (x - w) * r
                q = 2.0 * (q - r)
                if q > 0.0:
                    p = -p
                q = abs(q)
                etemp = e
                e = d
                if abs(p) < abs(0.5 * q * etemp) and \
                   q * (a - x) < p < q * (b - x):
                    d = p / q
                    u = x + d
                    if u - a < tol2 or b - u < tol2:
                        d = np.copysign(tol1, xm - x)
                    use_golden = False

            if use_golden:
                e = a - x if x >= xm else b - x
                d = CGOLD * e

            u = x + d if abs(d) >= tol1 else x + np.copysign(tol1, d)
            fu = self.evaluate_at(u)
            if self.cancelled:
                return

            if fu <= fx:
                if u >= x:
                    a = x
                else:
                    b = x
                v, w, x = w, x, u
                fv, fw, fx = fw, fx, fu
            else:
                if u < x:
                    a = u
                else:
                    b = u
                if fu <= fw or w == x:
                    v, w = w, u
                    fv, fw = fw, fu
                elif fu <= fv or v == x or v == w:
                    v = u
                    fv = fu

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)


class GoldenSection(UnivariateOptimizer):
    """Golden-section search for one-dimensional minimization.

    The interval is reduced by the golden ratio each iteration until
    its width is within both the absolute tolerance and the relative
    tolerance (scaled by the size of the two interior points).
    """

    def _optimize(self) -> None:

        state = self.state
        ax = self.lower
        cx = self.upper
        bx = 0.5 * (ax + cx)

        x0 = ax
        x3 = cx
        if abs(cx - bx) > abs(bx - ax):
            x1 = bx
            x2 = bx + GOLD_C * (cx - bx)
        else:
            x2 = bx
            x1 = bx - GOLD_C * (bx - ax)

        f1 = self.evaluate_at(x1)
        f2 = self.evaluate_at(x2)
        if self.cancelled:
            return

        def too_wide() -> bool:
            width = abs(x3 - x0)
            return width > self.absolute_tolerance or \
                width > self.relative_tolerance * (abs(x1) + abs(x2))

        while too_wide():
            if f2 < f1:
                x0, x1 = x1, x2
                x2 = GOLD_R * x2 + GOLD_C * x3
                f1 = f2
                f2 = self.evaluate_at(x2)
            else:
                x3, x2 = x2, x1
                x1 = GOLD_R * x1 + GOLD_C * x0
                f2 = f1
                f1 = self.evaluate_at(x1)

            if self.cancelled:
                return

            state.iterations += 1
            if state.iterations >= self.max_iterations:
                self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
                return

        self.update_status(OptimizationStatus.SUCCESS)
