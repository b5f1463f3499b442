#! /usr/bin/env python
"""
setup.py for pdfcalc
"""

# System imports
import io
import re
from os import path
from setuptools import setup, find_packages

PACKAGES = find_packages(exclude=['tests*'])

THIS_DIRECTORY = path.abspath(path.dirname(__file__))

# versioning

ISRELEASED = False
with io.open(path.join(THIS_DIRECTORY, 'pdfcalc', '_version.py')) as f:
    VERSION_INFO = dict(re.findall(r'^(MAJOR|MINOR|MICRO) = (\d+)$', f.read(), re.M))
VERSION = '{MAJOR}.{MINOR}.{MICRO}'.format(**VERSION_INFO)


with io.open(path.join(THIS_DIRECTORY, 'README.md')) as f:
    LONG_DESCRIPTION = f.read()

INFO = {
        'name': 'pdfcalc',
        'description': 'Real-space calculation of atomic pair distribution '
                       'functions from crystal and molecular structures.',
        'packages': PACKAGES,
        'include_package_data': True,
        'python_requires': '>=3.10',
        'install_requires': ['numpy', 'ase', 'pymatgen',
                             'scipy>=1.9.3', 'tqdm'],
        'extras_require': {'test': ['pytest']},
        'version': VERSION,
        'license': 'MIT',
        'long_description': LONG_DESCRIPTION,
        'long_description_content_type': 'text/markdown',
        'classifiers': ['Development Status :: 4 - Beta',
                        'Intended Audience :: Science/Research',
                        'License :: OSI Approved :: MIT License',
                        'Natural Language :: English',
                        'Operating System :: OS Independent',
                        'Programming Language :: Python :: 3.10',
                        'Topic :: Scientific/Engineering',
                        'Topic :: Scientific/Engineering :: Chemistry',
                        'Topic :: Scientific/Engineering :: Physics']
        }

####################################################################
# this is where setup starts
####################################################################


def setup_package():
    """
    Runs package setup
    """
    setup(**INFO)


if __name__ == '__main__':
    setup_package()
