"""
setup.py for the stochdual package.

The package sources live under ``python/``. Install for development with:
    pip install -e ".[dev]"
"""

from setuptools import find_packages, setup

setup(
    name="stochdual",
    version="0.1.0",
    description="Stochastic Dual Dynamic Programming with risk-averse cuts and parallel training",
    package_dir={"": "python"},
    packages=find_packages(where="python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
        "test": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
        ],
    },
)
