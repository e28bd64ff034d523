from setuptools import setup, find_packages

setup(
    name="deep-investigation",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "openai>=1.66.0",
        "openai-agents>=0.0.14",
        "pydantic>=2.0",
        "python-dotenv>=1.0.0",
        "beautifulsoup4>=4.12.0",
        "aiohttp>=3.8.0",
        "firecrawl-py>=1.6,<2",
        "tiktoken>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4",
            "pytest-mock>=3.11",
            "pytest-asyncio>=0.21.0",
        ],
        "tracing": [
            "logfire",
            "opentelemetry-sdk",
            "opentelemetry-exporter-otlp-proto-http",
        ],
    },
    entry_points={
        "console_scripts": [
            "deep-investigation=deep_investigation.run:main",
        ],
    },
    python_requires=">=3.9",
    description="Recursive LLM-guided web investigation that writes a markdown research report",
)
