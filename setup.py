from setuptools import setup, find_packages

# Name, version, dependencies and scripts live in pyproject.toml; this file
# only selects the packages and ships the bundled YAML defaults.
setup(
    packages=find_packages(include=["mobius_query", "mobius_query.*"]),
    package_data={"mobius_query": ["config/*.yaml"]},
    include_package_data=True,
)
