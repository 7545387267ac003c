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

"""The Nelder-Mead downhill simplex method."""

from collections.abc import Callable

import numpy as np

from numopt.utils.types import ArrayType, ObjectiveFunc

from .opt import BoundedOptimizer, OptimizationStatus


__all__ = ('NelderMead', 'Simplex')


# The simplex field is a npop by npar array, where each row contains
# the parameter values for a vertex. The __get/setitem__ calls allow
# the object to index into the vertices. The function values are
# stored separately in the fctvals field.
#
class Simplex:
    """A set of vertices and their function values.

    Parameters
    ----------
    func : callable
       The function used to evaluate a vertex.
    repair : callable
       Applied to each new vertex, to keep it within the bounds.
    vertices : ndarray
       The starting vertices, with shape (npop, npar).

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 repair: Callable[[np.ndarray], np.ndarray],
                 vertices: np.ndarray
                 ) -> None:
        self.func = func
        self.repair = repair
        self.simplex = np.array(vertices, dtype=float)
        self.npar = self.simplex.shape[1]
        self.fctvals = np.full(self.simplex.shape[0], np.inf)

    def __getitem__(self, index):
        return self.simplex[index]

    def __setitem__(self, index, val) -> None:
        self.simplex[index] = val

    def evaluate(self, cancelled: Callable[[], bool]) -> bool:
        """Calculate the function value of each vertex.

        Returns True if the run was cancelled before all the vertices
        were evaluated.
        """

        for idx, vertex in enumerate(self.simplex):
            self.fctvals[idx] = self.func(vertex)
            if cancelled():
                return True

        return False

    @staticmethod
    def sort_me(simp: np.ndarray,
                fctvals: np.ndarray
                ) -> tuple[np.ndarray, np.ndarray]:
        """Reorder the simplex by the function value (low to high)"""

        idx = np.argsort(fctvals, kind='stable')
        return simp[idx], fctvals[idx]

    def sort(self) -> None:
        self.simplex, self.fctvals = self.sort_me(self.simplex,
                                                  self.fctvals)

    def calc_centroid(self) -> np.ndarray:
        """The centroid of all but the worst (last) vertex."""
        return np.mean(self.simplex[:-1, :], 0)

    def move_vertex(self,
                    centroid: np.ndarray,
                    coef: float
                    ) -> tuple[np.ndarray, float]:
        """Move the worst vertex along the line through the centroid.

        The new point is ``(1 + coef) * centroid - coef * worst``, so
        coef=1 is a reflection and -0.5 an inside contraction. The
        worst vertex is not replaced.
        """

        vertex = (1.0 + coef) * centroid - coef * self.simplex[-1]
        vertex = self.repair(vertex)
        return vertex, self.func(vertex)

    def replace_worst(self, vertex: np.ndarray, fctval: float) -> None:
        self.simplex[-1] = vertex
        self.fctvals[-1] = fctval

    def shrink(self,
               shrink_coef: float,
               cancelled: Callable[[], bool]
               ) -> None:
        """Move every vertex toward the best one."""

        self.simplex[1:] = self.simplex[0] + \
            shrink_coef * (self.simplex[1:] - self.simplex[0])

        for idx in range(1, self.simplex.shape[0]):
            self.simplex[idx] = self.repair(self.simplex[idx])
            self.fctvals[idx] = self.func(self.simplex[idx])
            if cancelled():
                return


class NelderMead(BoundedOptimizer):
    """The Nelder-Mead downhill simplex method.

    The simplex starts at the initial values, with one vertex per
    parameter created by increasing that parameter by 5% (or by
    2.5e-4 if it is zero). Each iteration reflects the worst vertex
    through the centroid of the others; if this gives a new best
    point an expansion is tried, and if it is no better than the
    second-worst vertex a contraction is tried. If the contraction
    fails the simplex is shrunk toward the best vertex. All new
    vertices are clamped to the bounds.

    The search ends with SUCCESS when the best and worst vertices
    have the same value, to within the tolerances.

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

    Examples
    --------

    >>> def booth(x):
    ...     return (x[0] + 2 * x[1] - 7)**2 + (2 * x[0] + x[1] - 5)**2
    ...
    >>> opt = NelderMead(booth, 2, [0, 0], [-10, -10], [10, 10])
    >>> best = opt.minimize()

    """

    reflection_coef = 1.0      # alpha
    contraction_coef = 0.5     # beta
    expansion_coef = 2.0       # gamma
    shrink_coef = 0.5

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

    def initial_simplex(self) -> np.ndarray:
        """The starting vertices."""

        xpar = self.initial_values
        simplex = np.tile(xpar, (self.npar + 1, 1))
        for ii in range(self.npar):
            tmp = simplex[ii + 1]
            if 0.0 == tmp[ii]:
                tmp[ii] = 2.5e-4
            else:
                tmp[ii] *= 1.05
            simplex[ii + 1] = self.repair(tmp)

        return simplex

    def _optimize(self) -> None:

        state = self.state
        simplex = Simplex(self.evaluate, self.repair, self.initial_simplex())
        cancelled = lambda: self.cancelled
        if simplex.evaluate(cancelled):
            return

        rho_chi = self.reflection_coef * self.expansion_coef

        while state.iterations < self.max_iterations:

            simplex.sort()
            if self.check_convergence(simplex.fctvals[-1],
                                      simplex.fctvals[0]):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            state.iterations += 1

            centroid = simplex.calc_centroid()
            reflection_pt, fpr = simplex.move_vertex(centroid,
                                                     self.reflection_coef)
            if self.cancelled:
                return

            if fpr <= simplex.fctvals[0]:
                expansion_pt, fprr = simplex.move_vertex(centroid, rho_chi)
                if self.cancelled:
                    return

                if fprr < fpr:
                    simplex.replace_worst(expansion_pt, fprr)
                else:
                    simplex.replace_worst(reflection_pt, fpr)

            elif fpr >= simplex.fctvals[-2] or np.isnan(fpr):
                if fpr < simplex.fctvals[-1]:
                    simplex.replace_worst(reflection_pt, fpr)

                contraction_pt, fprr = \
                    simplex.move_vertex(centroid, -self.contraction_coef)
                if self.cancelled:
                    return

                if fprr < simplex.fctvals[-1]:
                    simplex.replace_worst(contraction_pt, fprr)
                else:
                    simplex.shrink(self.shrink_coef, cancelled)
                    if self.cancelled:
                        return

            else:
                simplex.replace_worst(reflection_pt, fpr)

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)
