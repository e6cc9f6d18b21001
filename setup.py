#!/usr/bin/env python3
"""
Setup script for station-reach package
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="station-reach",
    version="1.0.0",
    description="Travel-time reachability over a rail station network with a static TfL journey cache",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: Scientific/Engineering :: GIS",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "dev": ["pytest>=6.0.0", "black>=21.0.0", "ruff>=0.1.0"],
    },
    entry_points={
        "console_scripts": [
            "stationreach=stationreach.pipeline.reach:cli_main",
            "stationreach-cache=stationreach.cache.generator:cli_main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
