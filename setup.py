"""Setup script for the envdash package."""

from setuptools import find_packages, setup

setup(
    name="envdash",
    version="0.1.0",
    description="Live and historical environmental telemetry view for ESP32 sensor nodes",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "aiohttp",
        "python-socketio[asyncio_client]>=5.0",
        "rich",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "envdash-monitor=envdash.display:main",
        ],
    },
)
