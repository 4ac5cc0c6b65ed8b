"""
Setup script for lingo-srs.

lingo-srs is the spaced-repetition core of a phrase-learning app. It decides
when each learned phrase resurfaces and how its difficulty estimate evolves:

1. Scheduler - pure SM-2 next-state computation
2. Queries & Stats - due ordering, filters, grouping and summary counts
3. Repository - atomic, last-writer-wins persistence (memory or SQLite)

The 'lingo-srs' command is a developer CLI over a local SQLite store.
"""

from setuptools import find_packages, setup

setup(
    name="lingo-srs",
    version="1.0.0",
    description="Spaced-repetition scheduling core for phrase learning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["lingo_srs", "lingo_srs.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lingo-srs=lingo_srs.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition sm2 language education",
)
