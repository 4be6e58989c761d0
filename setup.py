"""
Setup script for the job board UI.

Allows development installation with `pip install -e .`
"""

import os

from setuptools import find_packages, setup

_here = os.path.dirname(os.path.abspath(__file__))
_version = {}
with open(os.path.join(_here, "jobboard", "version.py")) as f:
    exec(f.read(), _version)

setup(
    name="job-board-ui",
    version=_version["__version__"],
    packages=find_packages(include=["jobboard", "jobboard.*"]),
    package_data={"jobboard": ["templates/*.html", "templates/partials/*.html"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "flask>=3.0",
        "requests>=2.31",
        "python-dotenv>=1.0",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-jose[cryptography]>=3.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-mock>=3.12",
        ],
    },
)
