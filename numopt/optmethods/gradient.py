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

"""First-order methods: ADAM and gradient descent.

The `GradientOptimizer` class is also used by `numopt.optmethods.BFGS`
to calculate the gradient of the objective function.

"""

import numpy as np

from numopt.utils import derivative
from numopt.utils.err import OptimizerErr
from numopt.utils.types import ArrayType, GradientFunc, ObjectiveFunc

from .opt import BoundedOptimizer, OptimizationStatus, _check_range


__all__ = ('ADAM', 'GradientDescent')


class GradientOptimizer(BoundedOptimizer):
    """An optimizer which uses the gradient of the objective function.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The starting point and the bounds.
    gradient : callable or None, optional
       The gradient of func. If not set then a central-difference
       approximation is used, which costs 2 npar function
       evaluations.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

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
        super().__init__(func, npar, lower_bounds, upper_bounds,
                         initial_values, **kwargs)
        if gradient is not None and not callable(gradient):
            raise OptimizerErr('noncall', 'gradient')

        self.gradient = gradient

    def calc_gradient(self, x: np.ndarray) -> np.ndarray:
        """The gradient at x, in the internal (minimization) convention.

        The numerical approximation calls `evaluate`, so the calls
        count against the function-evaluation budget. The offset
        points are clamped to the bounds, which makes the estimate
        one-sided (and halved) for a parameter at a bound.
        """

        if self.gradient is None:
            return derivative.gradient(lambda v: self.evaluate(self.repair(v)),
                                       x)

        grad = np.asarray(self.gradient(x), dtype=float)
        if grad.shape != (self.npar, ):
            raise OptimizerErr('badsize', 'gradient', self.npar, grad.size)

        return self._scale * grad


class GradientDescent(GradientOptimizer):
    """Fixed-step steepest descent.

    Each iteration moves the parameters by ``-alpha * gradient``,
    clamps them to the bounds, and stops with SUCCESS when the
    function value no longer changes (within the tolerances).

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The starting point and the bounds.
    alpha : number, optional
       The step size (learning rate).
    gradient : callable or None, optional
       The gradient of func.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 alpha: float = 0.001,
                 *,
                 gradient: GradientFunc | None = None,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, initial_values, lower_bounds,
                         upper_bounds, gradient=gradient, **kwargs)
        self.alpha = alpha

    def validate(self) -> None:
        super().validate()
        _check_range('alpha', self.alpha, 0, np.inf, include_low=False)

    def step(self, x: np.ndarray, grad: np.ndarray) -> np.ndarray:
        """The new location."""
        return x - self.alpha * grad

    def _optimize(self) -> None:

        state = self.state
        x = self.initial_values.copy()
        f0 = self.evaluate(x)
        if self.cancelled:
            return

        while state.iterations < self.max_iterations:
            grad = self.calc_gradient(x)
            if self.cancelled:
                return

            x = self.repair(self.step(x, grad))
            f1 = self.evaluate(x)
            if self.cancelled:
                return

            if self.check_convergence(f0, f1):
                self.update_status(OptimizationStatus.SUCCESS)
                return

            f0 = f1
            state.iterations += 1

        self.update_status(OptimizationStatus.MAXIMUM_ITERATIONS_REACHED)


class ADAM(GradientDescent):
    """Adaptive moment estimation.

    The first and second raw moments of the gradient are tracked with
    exponential decay rates beta1 and beta2, bias corrected, and the
    step for each parameter is ``alpha * m / (sqrt(v) + eps)``. The
    parameters are clamped to the bounds after each step.

    Parameters
    ----------
    func : callable
       The objective function.
    npar : int
       The number of parameters.
    initial_values, lower_bounds, upper_bounds : sequence of number
       The starting point and the bounds.
    alpha : number, optional
       The step size (learning rate).
    beta1, beta2 : number, optional
       The decay rates of the first and second moments, which must
       lie in [0, 1).
    gradient : callable or None, optional
       The gradient of func.
    **kwargs
       Sent to `numopt.optmethods.opt.Optimizer`.

    References
    ----------

    .. [1] Kingma, D. P., & Ba, J., "Adam: A Method for Stochastic
           Optimization", 2014, https://arxiv.org/abs/1412.6980

    """

    def __init__(self,
                 func: ObjectiveFunc,
                 npar: int,
                 initial_values: ArrayType,
                 lower_bounds: ArrayType,
                 upper_bounds: ArrayType,
                 alpha: float = 0.001,
                 beta1: float = 0.9,
                 beta2: float = 0.999,
                 *,
                 gradient: GradientFunc | None = None,
                 **kwargs
                 ) -> None:
        super().__init__(func, npar, initial_values, lower_bounds,
                         upper_bounds, alpha, gradient=gradient, **kwargs)
        self.beta1 = beta1
        self.beta2 = beta2
        self._m = np.zeros(self.npar)
        self._v = np.zeros(self.npar)

    def validate(self) -> None:
        super().validate()
        _check_range('beta1', self.beta1, 0, 1, include_high=False)
        _check_range('beta2', self.beta2, 0, 1, include_high=False)

    def _optimize(self) -> None:
        self._m = np.zeros(self.npar)
        self._v = np.zeros(self.npar)
        super()._optimize()

    def step(self, x: np.ndarray, grad: np.ndarray) -> np.ndarray:
        self._m = self.beta1 * self._m + (1.0 - self.beta1) * grad
        self._v = self.beta2 * self._v + (1.0 - self.beta2) * grad * grad

        nstep = self.state.iterations + 1
        mhat = self._m / (1.0 - self.beta1**nstep)
        vhat = self._v / (1.0 - self.beta2**nstep)
        return x - self.alpha * mhat / (np.sqrt(vhat) + derivative.EPSILON)
