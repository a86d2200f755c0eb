#! /usr/bin/env python

# This library is free software; you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation; either version 3 of the
# License, or (at your option) any later version.
#
# This library is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, see
# <http://www.gnu.org/licenses/>.


"""
Python JVM class file codec

license: LGPL v.3
"""


from setuptools import setup as _setup


PYTHON_SUPPORTED_VERSIONS = (
    ">=3.6",
    "<4",
)


def setup():
    return _setup(
        name="python-jvmclass",
        version="1.0.0",
        description="Unpacking and packing of Java class files",
        license="GNU Lesser General Public License v3 (LGPLv3)",

        packages=["jvmclass", ],

        python_requires=",".join(PYTHON_SUPPORTED_VERSIONS),

        install_requires=[],

        extras_require={
            "test": ["pytest", ],
        },

        entry_points={
            "console_scripts": [
                "jvmclass-info=jvmclass.classinfo:main",
            ],
        },

        classifiers=[
            "Development Status :: 5 - Production/Stable",
            "Environment :: Console",
            "Intended Audience :: Developers",
            "License :: OSI Approved :: GNU Lesser General Public"
            " License v3 or later (LGPLv3+)",
            "Programming Language :: Python :: 3",
            "Topic :: Software Development :: Disassemblers",
        ],
    )


if __name__ == '__main__':
    setup()


#
# The end.
