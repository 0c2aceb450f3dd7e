# ============================================
# windcap - setup.py
# Python packaging setup
# ============================================

import re
from pathlib import Path
from setuptools import setup, find_packages

# Read version from the package
def get_version():
    """Get __version__ from src/windcap/__init__.py or fallback to default"""
    init_path = Path(__file__).parent / "src" / "windcap" / "__init__.py"
    if init_path.exists():
        match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']',
                          init_path.read_text(encoding="utf-8"), re.MULTILINE)
        if match:
            return match.group(1)
    return "0.1.0"

# Read README for long description
def get_long_description():
    """Get long description from README.md"""
    readme_path = Path(__file__).parent / "README.md"
    if readme_path.exists():
        with open(readme_path, "r", encoding="utf-8") as f:
            return f.read()
    return "Wind turbine capacity regression with cross-validated KNN"

# Read requirements.txt
def get_requirements():
    """Parse requirements.txt for dependencies"""
    requirements_path = Path(__file__).parent / "requirements.txt"
    requirements = []

    if requirements_path.exists():
        with open(requirements_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                # Skip comments and empty lines
                if line and not line.startswith("#"):
                    # Handle inline comments
                    if "#" in line:
                        line = line.split("#")[0].strip()
                    if not line.startswith("-"):
                        requirements.append(line)

    return requirements

# Development dependencies
def get_dev_requirements():
    """Get development dependencies"""
    return [
        "pytest>=8.3.2",
        "pytest-cov>=5.0.0",
        "pytest-mock>=3.14.0",
    ]

# Optional dependencies
extras_require = {
    "dev": get_dev_requirements(),
}

# Package configuration
setup(
    name="windcap",
    version=get_version(),
    description="Wind turbine capacity prediction with cross-validated KNN regression",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.10",

    # Dependencies
    install_requires=get_requirements(),
    extras_require=extras_require,

    # Entry points for CLI commands
    entry_points={
        "console_scripts": [
            "windcap=windcap.cli:main",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],

    keywords=["wind-energy", "knn", "regression", "cross-validation", "feature-importance"],

    license="MIT",
    zip_safe=False,
)
