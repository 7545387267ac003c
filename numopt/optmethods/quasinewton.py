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

"""The Broyden-Fletcher-Goldfarb-Shanno quasi-Newton method."""

import logging
from typing import NamedTuple

import numpy as np

from numopt.utils.err import NumericalErr
from numopt.utils.types import ArrayType, GradientFunc, ObjectiveFunc

from .gradient import GradientOptimizer
from .opt import OptimizationStatus


__all__ = ('BFGS', )


warning = logging.getLogger(__name__).warning

EPSILON = float(np.finfo(np.float64).eps)

# Sufficient decrease for the line search.
ALF = 1.0e-4

# Scale the maximum step length in the line search.
STPMX = 100.0

# The accuracy of a central-difference gradient.
GRADIENT_NOISE = EPSILON**(1.0 / 3.0)


class LineSearchResult(NamedTuple):
    """The end point of a line search."""

    x: np.ndarray
    fval: float
    check: bool
    """True when the step became too small and x is the start point."""


class BFGS(GradientOptimizer):
    """The BFGS quasi-Newton method.

    An approximation to the inverse Hessian, starting at the identity,
    is built up from the changes in the gradient. Each iteration
    makes a backtracking line search along ``-H g`` (a quadratic and
    then cubic model of the function along the line, with the
    Armijo sufficient-decrease test) and then applies the BFGS update.

    The run ends with SUCCESS when either the largest relative change
    in the parameters is within the relative tolerance, or the scaled
    gradient is within the absolute tolerance.

    A step which gives a NaN or infinite function value is halved.
    When the line search can not decrease the function the search
    restarts along the gradient, and if that also fails the run ends,
    with FAILURE unless the gradient is zero.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The starting point and the bounds. The bounds can be -inf and
       +inf.
    gradient : callable or None, optional
       The gradient of func. If not set a central-difference
       approximation is used.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    Raises
    ------
    numopt.utils.err.NumericalErr
       The line search found an uphill direction, or started from a
       non-finite function value or gradient (when `report_failure`
       is set, otherwise the status is set to FAILURE).

    References
    ----------

    .. [1] Press, W. H., Teukolsky, S. A., Vetterling, W. T., &
           Flannery, B. P., "Numerical Recipes: The Art of Scientific
           Computing", Third Edition, 2007, section 10.9.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 *,
                 gradient: GradientFunc | None = None,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, initial_values, lower_bounds,
                         upper_bounds, gradient=gradient, **kwargs)

    def line_search(self,
                    xold: np.ndarray,
                    fold: float,
                    g: np.ndarray,
                    p: np.ndarray,
                    stpmax: float
                    ) -> LineSearchResult:
        """Find a point along p which sufficiently decreases the function.

        Parameters
        ----------
        xold : ndarray
           The starting point.
        fold : number
           The function value at xold.
        g : ndarray
           The gradient at xold.
        p : ndarray
           The search direction. It is scaled down if its length is
           larger than stpmax.
        stpmax : number
           The maximum step length.

        Returns
        -------
        result : LineSearchResult

        """

        norm = np.sqrt(np.dot(p, p))
        if norm > stpmax:
            p = p * stpmax / norm

        slope = np.dot(g, p)
        if not (np.isfinite(fold) and np.isfinite(slope)):
            raise NumericalErr('nonfinite')

        if slope == 0.0:
            return LineSearchResult(xold.copy(), fold, False)

        if slope > 0.0:
            raise NumericalErr('roundoff')

        test = np.max(np.abs(p) / np.maximum(np.abs(xold), 1.0))
        alamin = EPSILON / test
        alam = 1.0
        alam2 = 0.0
        f2 = np.nan
        while True:
            x = self.repair(xold + alam * p)
            f = self.evaluate(x)
            if self.cancelled:
                return LineSearchResult(x, f, False)

            if alam < alamin:
                return LineSearchResult(xold.copy(), fold, True)

            if not np.isfinite(f):
                # The function can not be modelled here, so halve the
                # step and start again from a quadratic model.
                alam *= 0.5
                f2 = np.nan
                continue

            if f <= fold + ALF * alam * slope:
                return LineSearchResult(x, f, False)

            if not np.isfinite(f2):
                # quadratic model
                tmplam = -slope * alam**2 / (2.0 * (f - fold - alam * slope))
            else:
                # cubic model
                rhs1 = f - fold - alam * slope
                rhs2 = f2 - fold - alam2 * slope
                a = (rhs1 / alam**2 - rhs2 / alam2**2) / (alam - alam2)
                b = (-alam2 * rhs1 / alam**2 + alam * rhs2 / alam2**2) / \
                    (alam - alam2)
                if a == 0.0:
                    tmplam = -slope / (2.0 * b)
                else:
                    disc = b * b - 3.0 * a * slope
                    if disc < 0.0:
                        tmplam = 0.5 * alam
                    elif b <= 0.0:
                        tmplam = (-b + np.sqrt(disc)) / (3.0 * a)
                    else:
                        tmplam = -slope / (b + np.sqrt(disc))

                tmplam = min(tmplam, 0.5 * alam)

            alam2 = alam
            f2 = f
            alam = max(tmplam, 0.1 * alam)

    def _stalled(self, p: np.ndarray, fp: float, g: np.ndarray) -> None:
        """No step along the gradient decreases the function.

        This is a minimum when the gradient is zero, to within the
        rounding error of a finite-difference estimate, ignoring the
        components which point out of the bounds for parameters at a
        bound. Otherwise the function has a kink at p (or the
        gradient is wrong) and the run is a failure.
        """

        grad = g.copy()
        grad[(p <= self.lower_bounds) & (grad > 0)] = 0.0
        grad[(p >= self.upper_bounds) & (grad < 0)] = 0.0

        den = max(abs(fp), 1.0)
        test = np.max(np.abs(grad) * np.maximum(np.abs(p), 1.0)) / den
        if test <= max(self.absolute_tolerance, GRADIENT_NOISE):
            self.update_status(OptimizationStatus.SUCCESS)
            return

        if self.report_failure:
            warning("%s: the line search can not decrease the function "
                    "at %s", type(self).__name__, p)

        self.update_status(OptimizationStatus.FAILURE)

    def _optimize(self) -> None:

        state = self.state
        npar = self.npar
        p = self.initial_values.copy()

        fp = self.evaluate(p)
        if self.cancelled:
            return

        g = self.calc_gradient(p)
        if self.cancelled:
            return

        hessin = np.identity(npar)
        xi = -g
        stpmax = STPMX * max(np.sqrt(np.dot(p, p)), npar)
        restarted = True

        while state.iterations < self.max_iterations:
            pnew, fret, check = self.line_search(p, fp, g, xi, stpmax)
            if self.cancelled:
                return

            if check:
                if restarted:
                    self._stalled(p, fp, g)
                    return

                # Drop the curvature information and try the
                # steepest-descent direction.
                hessin = np.identity(npar)
                xi = -g
                restarted = True
                continue

            restarted = False
            fp = fret
            xi = pnew - p
            p = pnew

            # Test for convergence on the step size.
            test = np.max(np.abs(xi) / np.maximum(np.abs(p), 1.0))
            if test <= self.relative_tolerance:
                self.update_status(OptimizationStatus.SUCCESS)
                return

            dg = g
            g = self.calc_gradient(p)
            if self.cancelled:
                return

            # Test for convergence on a zero gradient.
            den = max(abs(fret), 1.0)
            test = np.max(np.abs(g) * np.maximum(np.abs(p), 1.0)) / den
            if test <= self.absolute_tolerance:
                self.update_status(OptimizationStatus.SUCCESS)
                return

            dg = g - dg
            hdg = hessin @ dg
            fac = np.dot(dg, xi)
            fae = np.dot(dg, hdg)
            sumdg = np.dot(dg, dg)
            sumxi = np.dot(xi, xi)

            # Skip the update if the curvature is not positive enough.
            if fac > np.sqrt(EPSILON * sumdg * sumxi):
                fac = 1.0 / fac
                fad = 1.0 / fae
                dg = fac * xi - fad * hdg
                hessin += fac * np.outer(xi, xi) - \
                    fad * np.outer(hdg, hdg) + fae * np.outer(dg, dg)

            xi = -(hessin @ g)
            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
