"""
davkit discovers, reads and writes CalDAV calendars and CardDAV address
books.
"""

from __future__ import annotations

import ast
import re

from setuptools import Command
from setuptools import find_packages
from setuptools import setup

requirements = [
    "click>=5.0,<9.0",
    "click-log>=0.3.0, <0.5.0",
    "requests >=2.20.0",
    "aiohttp>=3.8.2,<3.14.0",
    "aiostream>=0.4.3,<0.5.0",
    "atomicwrites>=0.1.7",
]

test_requirements = [
    "pytest",
    "pytest-asyncio",
    "aioresponses",
    "hypothesis>=5.0.0,<7.0.0",
]


class PrintRequirements(Command):
    description = "Prints minimal requirements"
    user_options: list = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        for requirement in requirements:
            print(requirement.replace(">", "=").replace(" ", ""))


_version_re = re.compile(r"__version__\s+=\s+(.*)")
with open("davkit/__init__.py") as f:
    version = str(ast.literal_eval(_version_re.search(f.read()).group(1)))

with open("README.rst") as f:
    long_description = f.read()


setup(
    # General metadata
    name="davkit",
    version=version,
    url="https://github.com/davkit/davkit",
    description="Asynchronous CalDAV and CardDAV client",
    license="BSD",
    long_description=long_description,
    # Runtime dependencies
    install_requires=requirements,
    python_requires=">=3.8",
    # Optional dependencies
    extras_require={
        "test": test_requirements,
    },
    # Other
    packages=find_packages(exclude=["tests.*", "tests"]),
    include_package_data=True,
    cmdclass={"minimal_requirements": PrintRequirements},
    entry_points={"console_scripts": ["davkit = davkit.cli:app"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "License :: OSI Approved :: BSD License",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Internet",
        "Topic :: Office/Business :: Scheduling",
    ],
)
