from setuptools import setup, find_packages

setup(
    name="textfile_metrics",
    version="0.1.0",
    packages=find_packages(exclude=("tests",)),
    python_requires=">=3.8",
    install_requires=["python-dotenv>=0.19"],
    extras_require={"test": ["pytest>=7"]},
    description="File-backed Prometheus metrics storage in the text exposition format",
)
