#!/usr/bin/env python3
"""Setup script for the Azure DevOps support ticket escalation tool.
"""

from setuptools import find_packages, setup

# Read requirements from requirements.txt file
with open("requirements.txt") as f:
    requirements = f.read().splitlines()

# Remove any comments or blank lines from requirements
requirements = [line for line in requirements if line and not line.startswith("#")]

setup(
    name="ado-ticket-escalation",
    version="0.1.0",
    description="Escalate Azure DevOps support tickets to linked second-line issues",
    packages=find_packages(include=["ticket_escalation", "ticket_escalation.*"]),
    include_package_data=True,
    python_requires=">=3.12,<4.0",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=8.0"],
    },
    license="MIT",
    entry_points={
        "console_scripts": [
            "ticket-escalation=ticket_escalation.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
