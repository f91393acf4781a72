"""Setup for CaseVault Python SDK."""

from setuptools import find_packages, setup

setup(
    name="casevault-sdk",
    version="0.1.0",
    description="CaseVault API Python SDK",
    packages=find_packages(include=["casevault_sdk", "casevault_sdk.*"]),
    install_requires=[
        "requests>=2.31.0",
    ],
    python_requires=">=3.11",
)
