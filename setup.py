import setuptools
from pathlib import Path

# Read the long description from README.md
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setuptools.setup(
    name="goalforge",
    version="0.1.0",
    author="GoalForge",
    description="GoalForge is an autonomous goal-driven agent. State a goal in natural language and the agent decomposes it into tasks, executes them one by one through a language model, and streams typed progress messages back to the caller, with pause, single-step and stop controls.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src"),
    python_requires=">=3.10,<4.0",
    install_requires=[
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "openai>=1.0",
        "httpx>=0.24",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    include_package_data=True,
)
