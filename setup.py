from setuptools import setup, find_packages

setup(
    name="sqlchart",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"sqlchart": ["static/*.html"]},
    python_requires=">=3.9",
    install_requires=[
        "fastapi[standard]>=0.110",
        "uvicorn[standard]>=0.29",
        "websockets>=12.0",
        "pydantic>=2.0,<3",
        "numpy>=1.26.4",
        "pandas>=2.0",
        "matplotlib>=3.8",
        "SQLAlchemy>=2.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "oracle": ["oracledb>=2.0"],
        "test": ["pytest>=7.4", "httpx>=0.27"],
    },
    entry_points={
        "console_scripts": [
            "sqlchart=sqlchart.cli:main",
        ],
    },
)
