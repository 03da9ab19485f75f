from setuptools import setup, find_packages

setup(
    name="faultpage",
    version="0.1.0",
    description="HTML diagnostic pages for uncaught Python faults",
    long_description=open("README.md", encoding="UTF-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["faultpage", "faultpage.*"]),
    classifiers = [
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires = ["html5tagger>=1.2.1", "pygments>=2.12"],
    extras_require = {"test": ["pytest", "beautifulsoup4", "coverage"]},
    package_data = {"faultpage": ["style.css"]},
    include_package_data = True,
)
