"""
Blueprintc - Declarative draft compiler
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="blueprintc",
    version="1.0.0",
    author="Blueprintc Team",
    author_email="",
    description="⚡ Compile short YAML drafts into models, schemas and routers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["blueprintc", "blueprintc.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "blueprintc=blueprintc.cli:main",
        ],
    },
    keywords="generator, scaffolding, yaml, draft, code-generator, sqlalchemy, fastapi",
)
