from setuptools import setup, find_packages

setup(
    name="import-analyzer",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        # Parser backends
        "tree-sitter>=0.22",
        "tree-sitter-javascript",
        "tree-sitter-typescript",
        "esprima>=4.0,<5",
        # Watch mode
        "watchdog>=3.0",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "import-analyzer=import_analyzer.cli:main",
        ],
    },
    description="Incremental discovery of module imports in JavaScript source trees.",
)
