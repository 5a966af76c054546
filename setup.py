from pathlib import Path
from setuptools import setup, find_packages

ROOT = Path(__file__).parent
README = (ROOT / "README.md").read_text(encoding="utf-8")

setup(
    name="bookforum_feed",
    version="0.1.0",
    description="Live, paginated discussion feed with voting for a Firestore-backed book forum",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,           # include py.typed
    package_data={"bookforum_feed": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=1.5,<3.0.0",
        "google-cloud-firestore>=2.0.0",  # AsyncClient + on_snapshot
        "google-api-core",
        "packaging",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio", "httpx"],
        "dev": ["black", "ruff", "pytest", "pytest-asyncio", "httpx"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Framework :: AsyncIO",
        "Topic :: Database :: Front-Ends",
        "Typing :: Typed",
    ],
    keywords=[
        "firestore",
        "pydantic",
        "asyncio",
        "feed",
        "pagination",
    ],
)
