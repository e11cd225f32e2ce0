# setup.py
from setuptools import setup, find_packages

setup(
    name="context_scribe",
    version="0.1.0",
    description="Асинхронный сборщик документации сайта в единый markdown-документ",
    packages=find_packages(include=["context_scribe", "context_scribe.*"]),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "langdetect>=1.0.9",
        "lxml[html_clean]>=5.2",
        "lxml_html_clean>=0.1",
        "markdownify>=0.11",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "readability-lxml>=0.8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["context-scribe=context_scribe.cli:cli"],
    },
    python_requires=">=3.11",
)
