from setuptools import setup, find_packages

setup(
    name="burstlimit",
    version="0.1.0",
    packages=find_packages(include=["burstlimit", "burstlimit.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)
