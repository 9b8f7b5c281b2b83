"""
Setup script for cacr-coach.

CACR Coach runs progressive assessment sessions in the terminal. Each round
follows the Challenge -> Attempt -> Compare -> Reflect cycle:

1. Challenge - A review task picked for the learner's level and weak spots
2. Attempt - The learner reports findings
3. Compare - Findings are scored against hidden ground truth
4. Reflect - The learner explains what they missed before moving on

The 'cacr' command is the entry point.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="cacr-coach",
    version="0.1.0",
    description="Progressive assessment sessions: Challenge, Attempt, Compare, Reflect",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
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
            "cacr=src.cli.coach:run",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="assessment adaptive-difficulty code-review cli education",
)
