#!/usr/bin/env python
"""A python based CellML to ODE translator.

Cellode reads CellML 1.0, 1.1 and 2.0 models, resolves their connections
and units, and assembles a flat ODE system of states, algebraic variables
and parameters that can be handed to CasADi.

"""

from setuptools import find_packages, setup

DOCLINES = __doc__.split("\n")

CLASSIFIERS = """\
Development Status :: 3 - Alpha
Intended Audience :: Science/Research
Intended Audience :: Developers
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Topic :: Scientific/Engineering :: Bio-Informatics
Topic :: Scientific/Engineering :: Mathematics
Topic :: Software Development :: Compilers
Operating System :: Microsoft :: Windows
Operating System :: POSIX
Operating System :: Unix
Operating System :: MacOS
"""


def setup_package():
    """
    Setup the package.
    """
    setup(
        version='0.1.0',
        name='cellode',
        description=DOCLINES[0],
        long_description="\n".join(DOCLINES[2:]),
        license='BSD',
        classifiers=[_f for _f in CLASSIFIERS.split('\n') if _f],
        platforms=["Windows", "Linux", "Solaris", "Mac OS-X", "Unix"],
        install_requires=[
            'lxml',
            'numpy',
            'casadi >= 3.5',
        ],
        extras_require={
            'test': ['pytest', 'coverage >= 3.7.1'],
        },
        python_requires='>=3.8',
        packages=find_packages("src"),
        package_dir={"": "src"},
        include_package_data=True,
        entry_points={
            'console_scripts': ['cellode = cellode.compiler:main'],
        },
    )


if __name__ == '__main__':
    setup_package()
