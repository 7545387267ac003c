#
#  Copyright (C) 2007, 2014, 2015, 2016, 2019, 2020, 2024
#     Smithsonian Astrophysical Observatory
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

"""

Numerical optimization for model fitting

numopt provides local (Brent, golden-section, Nelder-Mead, Powell,
BFGS, ADAM) and global (particle swarm, differential evolution,
simulated annealing, shuffled complex evolution, MLSL, multi-start)
optimizers for scalar objective functions, together with an
augmented Lagrangian wrapper for constrained problems.

Note that the top level numopt package does not import any
subpackages. Use ``import numopt.optmethods`` to access the
optimizers.

"""

import logging
import os
import os.path
import sys


__all__ = ('get_config', )

__version__ = "1.0.0"


class Formatter(logging.Formatter):
    def format(self, record):
        if record.levelno > logging.INFO:
            msg = '%s: %s' % (record.levelname, record.getMessage())
        else:
            msg = record.getMessage()
        return msg

log = logging.getLogger('numopt')
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(Formatter())
log.addHandler(handler)
log.setLevel(logging.INFO)

del Formatter, log, handler


def get_config():
    "Get the path for the installed numopt configuration file"

    filename = "numopt.rc"

    # If NONUMOPTRC is set, read in system config file
    # ignore any user config file
    if 'NONUMOPTRC' in os.environ:
        return os.path.join(os.path.dirname(__file__), filename)

    # If NUMOPTRC is set, read in config file from there,
    # and ignore default location
    if 'NUMOPTRC' in os.environ:
        config = os.environ.get('NUMOPTRC')
        if os.path.isfile(config):
            return config

    # NUMOPTRC was not set, so look for .numopt.rc in default
    # location, which is user's home directory.
    home_dir = os.path.expanduser('~')
    config = os.path.join(home_dir, '.' + filename)

    if os.path.isfile(config):
        return config

    # If no user config file is set, fall back to system config file
    return os.path.join(os.path.dirname(__file__), filename)
