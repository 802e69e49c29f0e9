from setuptools import setup, find_namespace_packages

setup(
    name="ai-guardian-gateway",
    version="0.1.0",
    packages=find_namespace_packages(include=["guardian", "guardian.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "httpx",
        "pydantic",
        "pydantic-settings",
        "redis",
        "tzdata",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
        ],
    },
)
