"""Setup script for the neighbourhood case map following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="toronto-covid-map",
    version="1.0.0",
    description="Neighbourhood case map - paginated open data joined onto a live choropleth",
    author="Covid Map Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["covid_map*", "shared*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "requests",
        "shapely>=2",
        "pydeck",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: GIS",
    ],
)
