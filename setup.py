from setuptools import setup, find_packages

setup(
    name="formstore",
    version="0.1.0",
    description="Validated nested form state kept in an external watchable store",
    author="formstore Team",
    packages=find_packages(include=["formstore", "formstore.*"]),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
