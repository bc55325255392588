"""Setup script for mindfeed."""

from setuptools import setup, find_packages

setup(
    name="mindfeed",
    version="1.0.0",
    description="Personalized content recommendations and adaptive model selection",
    python_requires=">=3.11",
    packages=find_packages(include=["mindfeed", "mindfeed.*"]),
    package_data={"mindfeed.data": ["*.json"]},
    include_package_data=True,
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "anyio>=4.0",
        "typing_extensions>=4.8",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
)
