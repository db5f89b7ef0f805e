"""Setup configuration for firestore-bigquery-export package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = (
    readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""
)

setup(
    name="firestore-bigquery-export",
    version="1.0.0",
    description="Resumable import of Cloud Firestore collections into a BigQuery changelog with a latest-state view",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["firestore_export", "firestore_export.*"]),
    python_requires=">=3.10",
    install_requires=[
        "boto3>=1.26.0",  # S3 checkpoint storage
        "google-api-core>=2.11.0",
        "google-cloud-bigquery>=3.10.0",
        "google-cloud-firestore>=2.11.0",
        "ibis-framework[bigquery,duckdb]>=9.0.0",  # Latest-state view definition
        "pandas>=1.5.0",
        "pyarrow>=10.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "tenacity>=8.0.0",  # For retry logic
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
            "mypy>=0.990",
        ],
    },
    entry_points={
        "console_scripts": [
            "firestore-bigquery-import=firestore_export.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="firestore bigquery changelog cdc import data-pipeline",
)
