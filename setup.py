from setuptools import find_packages, setup

setup(
    name="lcdproc-client",
    version="0.1.0",
    description="Client for the LCDproc display server protocol",
    packages=find_packages(include=["lcdproc_client", "lcdproc_client.*"]),
    python_requires=">=3.11",
    install_requires=[],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    tests_require=["pytest", "pytest-asyncio"],
)
