"""Setup configuration for the Azur Lane Manga Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="azurmanga",
    version="0.1.0",
    description="A Discord bot that serves random Azur Lane one-panel manga",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiohttp>=3.9",
        "aiosqlite>=0.20",
        "beautifulsoup4>=4.12",
        "prompt_toolkit>=3.0",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "azurmanga=azurmanga.main:main",
        ],
    },
)
