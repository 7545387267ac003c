#
# Copyright (C) 2014, 2017 - 2024
# Smithsonian Astrophysical Observatory
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

import sys

# This is done before we load in any non-core modules to avoid people
# installing software that they can not use.
#
if sys.version_info < (3, 10):
    sys.stderr.write("numopt requires Python 3.10 or later.\n")
    sys.exit(1)

from setuptools import find_packages, setup


# First provide helpful messages if contributors try and run legacy commands.

HELP = {
    "test": """
Note: tests are not run using 'python setup.py test'. Instead
you will need to use pytest. For example:

    pip install -e .[test]
    pytest

and add --runslow to include the slow tests.
""",

    "develop": """
Note: 'python setup.py develop' is not supported. Please use
either of

    pip install -e .
    pip install -e .[test]
""",

    "install": """
Note: 'python setup.py install' is not supported. Please use

    pip install .
"""
}

for opt, help in HELP.items():
    if opt in sys.argv:
        print(help)
        sys.exit(1)


setup(name='numopt',
      version='1.0.0',
      description='Local, global, and constrained numerical optimizers',
      license='GPL-3.0-or-later',
      python_requires='>=3.10',
      packages=find_packages(include=['numopt', 'numopt.*']),
      package_data={'numopt': ['numopt.rc']},
      install_requires=['numpy'],
      extras_require={'test': ['pytest>=8.0']},
      classifiers=[
          'Intended Audience :: Science/Research',
          'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
          'Programming Language :: Python :: 3',
          'Topic :: Scientific/Engineering :: Mathematics'
      ])
