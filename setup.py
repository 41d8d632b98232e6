from setuptools import setup, find_packages

setup(
    name="agent_toolkit",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "pyyaml",
        "textual",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "agent-toolkit=agent_toolkit.cli:main",
        ],
    },
    description="Tool surface for an autonomous coding agent: fuzzy text edits, "
                "image generation, plugin sources and snowflake ids.",
)
