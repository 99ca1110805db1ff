from setuptools import setup, find_namespace_packages

setup(
    name="bibliopi",
    version="0.1.0",
    packages=find_namespace_packages(include=['cli*', 'core*']),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "Click",
        "SQLAlchemy>=2.0",
        "beautifulsoup4",
        "requests",
        "Pillow",
        "psutil",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "bibliopi=cli.main:main",
        ],
    },
)
