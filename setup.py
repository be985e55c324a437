from setuptools import setup, find_packages

setup(
    name="code_wiki",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml",
        "numpy",
        # Scanner grammars
        "tree-sitter>=0.22",
        "tree-sitter-python",
        "tree-sitter-javascript",
        "tree-sitter-typescript",
        "tree-sitter-java",
        "tree-sitter-go",
        "tree-sitter-rust",
        "tqdm>=4.60",
    ],
    extras_require={
        # Vector-tier matching (install separately when needed)
        "semantic": [
            "openai>=1.0",
        ],
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "code-wiki=code_wiki.wiki.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Links knowledge entries to the code elements they describe.",
)
