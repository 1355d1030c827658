# setup.py
from setuptools import setup, find_packages

setup(
    name="hikma-export",
    version="0.1.0",
    description="Export and import pipeline for HikmaCash financial records",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "python-dotenv>=0.19",
        "xlsxwriter>=3.0",
        "fastapi>=0.100",
        "python-multipart>=0.0.6",
        "uvicorn>=0.20",
        "supabase>=2.0",
        "simplejson>=3.17",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "openpyxl>=3.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "hikma-export=hikma_export.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
