#
#  Copyright (C) 2020, 2024  Smithsonian Astrophysical Observatory
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
"""Control the amount of output created by the optimizers.

The optimizers log to the ``numopt`` logger hierarchy: a summary of
each run at the DEBUG level (per-iteration values for the global
methods) and a WARNING when a run stops because a budget was used
up.

"""

import contextlib
import logging


__all__ = ('NumoptVerbosity', )


class NumoptVerbosity(contextlib.ContextDecorator,
                      contextlib.AbstractContextManager):
    '''Set the output logging level for numopt as a context.

    This changes the logging level globally for all modules in
    numopt. It can also be used as a decorator.

    Parameters
    ----------
    level : string or int
        New level for logging. Allowed strings are
        ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``, and ``CRITICAL``

    Examples
    --------

    Display the per-iteration output of a global optimizer:

    >>> with NumoptVerbosity('DEBUG'):
    ...     opt.minimize()

    Hide the warning about exhausted budgets:

    >>> @NumoptVerbosity('ERROR')
    ... def quiet_fit(opt):
    ...     return opt.minimize()

    '''
    def __init__(self, level):
        self.level = level
        self.numoptlog = logging.getLogger('numopt')
        self.old = []

    def __enter__(self):
        # A stack so the same instance can be re-entered when used
        # as a decorator on a recursive call.
        self.old.append(self.numoptlog.level)
        self.numoptlog.setLevel(self.level)
        return self

    def __exit__(self, *args):
        self.numoptlog.setLevel(self.old.pop())
        return False
