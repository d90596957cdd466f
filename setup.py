from setuptools import setup, find_packages

setup(
    name="flowlens",
    version="0.1.0",
    description="Explain workflow automation scripts as steps, actions and plain source",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"flowlens": ["grammar.lark"]},
    install_requires=[
        "lark>=1.1",
        "pydantic>=2.0",
        "loguru>=0.7",
        "opentelemetry-api",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "flowlens=flowlens.cli:main",
        ],
    },
    python_requires=">=3.10",
)
