#!/usr/bin/env python3
"""
mini-db Setup Script
====================
Allows installation of the mini-db package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # With test dependencies
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="mini-db",
    version="1.0.0",
    packages=find_packages(include=["minidb", "minidb.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "mini-db=minidb.server:main",
        ],
    },
)
