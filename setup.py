# -*- coding: utf-8 -*-
from setuptools import setup, find_packages

long_description = "Streaming ATR trail and session volume profile overlays for Python 3 and Pandas"

setup(
    name = "pandas_ta_overlay",
    packages = find_packages(include=["pandas_ta_overlay", "pandas_ta_overlay.*"]),
    version = "0.1.0",
    description=long_description,
    long_description=long_description,
    keywords = ['technical analysis', 'python3', 'pandas', 'volume profile', 'atr'],
    license="The MIT License (MIT)",
    classifiers = [
        'Programming Language :: Python :: 3.9',
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Intended Audience :: Developers',
        'Intended Audience :: Financial and Insurance Industry',
        'Topic :: Office/Business :: Financial :: Investment',
    ],
    python_requires=">=3.9",
    install_requires=['numpy', 'pandas'],

    # List additional groups of dependencies here (e.g. development dependencies).
    # You can install these using the following syntax, for example:
    # $ pip install -e .[dev,test]
    extras_require = {
        'dev': ['pytest', 'jupyterlab'],
        'test': ['pytest'],
    },
)
