from setuptools import setup, find_packages

setup(
    name="fin-space",
    version="0.1.0",
    packages=find_packages(include=["finspace", "finspace.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "prometheus_client>=0.16.0",
        "psutil>=5.9.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fin-space=finspace.cli:main",
        ],
    },
    python_requires=">=3.8",
)
