"""Setup configuration for prcadence"""

from setuptools import setup, find_namespace_packages

setup(
    name="pr-cadence",
    version="0.1.0",
    description=(
        "CLI tool for GitHub pull request metrics: lead time, review latency, "
        "merge wait, release and hotfix cadence, and workflow run health."
    ),
    author="PR Cadence Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "python-dateutil>=2.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "pr-cadence=prcadence.main:main",
        ],
    },
)
