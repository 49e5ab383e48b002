"""Setup configuration for engine-runner."""

from setuptools import setup, find_packages

setup(
    name="engine-runner",
    version="0.1.0",
    description="Test package model and driver orchestration core for a test engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "engine-runner=engine_runner.cli:main",
        ],
    },
)
