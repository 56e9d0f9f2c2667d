"""
Setup script for tfproxy - dynamic proxy bindings for a deep-learning
framework's Python API.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = ""
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

setup(
    name="tfproxy",
    version="0.2.0",
    author="tfproxy Team",
    description="Dynamic attribute proxies and value marshaling for a deep-learning framework's Python API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["tfproxy", "tfproxy.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
    ],
    extras_require={
        "tensorflow": ["tensorflow>=2.0"],
        "dev": [
            "numpy>=1.19.0",
            "pytest>=6.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    keywords="deep-learning tensorflow bindings proxy marshaling",
)
