from setuptools import setup, find_packages

setup(
    name="exam-mix-toolkit",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "openpyxl>=3.0",
        "python-docx>=1.1",
        "lxml>=4.9",
        "reportlab>=3.6",
        "pyyaml>=6.0",
    ],
    extras_require={
        "ai": ["openai>=1.0"],
        "test": ["pytest>=7.0", "openai>=1.0", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "exam-mix=exam_mix_toolkit.cli:main",
        ],
    },
)
