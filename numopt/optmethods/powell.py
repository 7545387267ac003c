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

"""Powell's conjugate-direction method."""

import numpy as np

from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import BoundedOptimizer, OptimizationStatus
from .univariate import BrentSearch


__all__ = ('Powell', )


class Powell(BoundedOptimizer):
    """Powell's derivative-free conjugate-direction method.

    The direction set starts as the coordinate axes. Each iteration
    minimizes along every direction in turn, using `BrentSearch`, and
    records the direction with the largest decrease. The net
    direction moved during the iteration replaces that direction only
    when an extrapolation along it looks promising (the discriminant
    test of [1]_), which stops the directions from becoming linearly
    dependent.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The starting point and the bounds.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Press, W. H., Teukolsky, S. A., Vetterling, W. T., &
           Flannery, B. P., "Numerical Recipes: The Art of Scientific
           Computing", Third Edition, 2007, section 10.7.

    """

    line_step = 0.1
    """The initial step used to bracket each line minimization."""

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         initial_values, **kwargs)

    def line_minimization(self,
                          start: np.ndarray,
                          direction: np.ndarray
                          ) -> tuple[np.ndarray, np.ndarray, float]:
        """Minimize along a line.

        Parameters
        ----------
        start : ndarray
           The starting point.
        direction : ndarray
           The direction to search along.

        Returns
        -------
        point, step, fval : ndarray, ndarray, number
           The location of the minimum, the step taken to get there
           from start (the scaled direction), and the function value.
           If the run is cancelled the fval is NaN.

        """

        def func(alpha):
            return self.evaluate(self.repair(start + alpha * direction))

        brent = BrentSearch(func, 0.0, 1.0,
                            relative_tolerance=self.relative_tolerance,
                            absolute_tolerance=self.absolute_tolerance,
                            report_failure=False, record_traces=False)
        brent.parent = self
        brent.bracket(self.line_step)
        brent.minimize()
        if self.cancelled:
            return start, direction, np.nan

        step = direction * brent.best_x
        point = self.repair(start + step)
        return point, step, brent.best_parameter_set.fitness

    def _optimize(self) -> None:

        state = self.state
        npar = self.npar
        p = self.initial_values.copy()
        pt = p.copy()
        ximat = np.identity(npar)

        fret = self.evaluate(p)
        if self.cancelled:
            return

        while state.iterations < self.max_iterations:
            fp = fret
            ibig = -1
            delta = 0.0     # the biggest function decrease

            for ii in range(npar):
                fptt = fret
                p, _, fret = self.line_minimization(p, ximat[:, ii])
                if self.cancelled:
                    return

                if fptt - fret > delta:
                    delta = fptt - fret
                    ibig = ii

            if self.check_convergence(fp, fret):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            # Extrapolate along the average direction moved.
            ptt = self.repair(2.0 * p - pt)
            xi = p - pt
            pt = p.copy()

            fptt = self.evaluate(ptt)
            if self.cancelled:
                return

            if fptt < fp and ibig >= 0:
                t = 2.0 * (fp - 2.0 * fret + fptt) * (fp - fret - delta)**2 - \
                    delta * (fp - fptt)**2
                if t < 0.0:
                    p, xi, fret = self.line_minimization(p, xi)
                    if self.cancelled:
                        return

                    ximat[:, ibig] = ximat[:, npar - 1]
                    ximat[:, npar - 1] = xi

            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
