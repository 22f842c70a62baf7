#!/usr/bin/env python3
from setuptools import setup, find_packages

setup(
    name="mshio",
    version="0.1.0",
    description="Parser for the Gmsh MSH 4.1 mesh file format (ASCII and binary)",
    author="Emil Mammadli",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.20.0",
        "matplotlib>=3.4.0",
    ],
    extras_require={
        "meshio": ["meshio>=5.0.0"],
        "test": ["pytest>=7.0.0", "meshio>=5.0.0"],
    },
    entry_points={
        "console_scripts": [
            "mshio=mshio.cli.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
    ],
)
