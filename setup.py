# setup.py
from setuptools import setup, find_packages

setup(
    name="site_index",
    version="0.1.0",
    description="Sitemap crawler and per-site JSON search index SiteIndex",
    packages=find_packages(include=["site_index", "site_index.*"]),
    package_data={"site_index": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=4.9",
        "pydantic>=2.4",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
        "MarkupSafe>=2.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "site-index=site_index.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
