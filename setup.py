"""Setup configuration for the Auditcord Discord audit log bot."""

from setuptools import setup, find_packages

setup(
    name="auditcord",
    version="0.1.0",
    description="A Discord bot that posts attributed audit log embeds for moderation events",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "python-dotenv",
        "PyYAML",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "auditcord=auditcord.main:main",
        ],
    },
)
