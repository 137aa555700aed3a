#!/usr/bin/env python
#

from setuptools import setup

from asmaildir import __version__

setup(
    name="asmaildir",
    version=__version__,
    description="An asyncio maildir message store",
    long_description=(
        "asmaildir delivers messages in to, and claims and flags messages "
        "in, maildir message stores using lock free atomic renames."
    ),
    author="Scanner",
    author_email="scanner@apricot.com",
    packages=["asmaildir"],
    python_requires=">=3.11",
    install_requires=[
        "aiofiles>=23.1",
        "docopt-ng",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
            "faker",
        ],
    },
    entry_points={
        "console_scripts": ["asmaildir=asmaildir.cli:main"],
    },
)
