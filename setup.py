from setuptools import setup, find_namespace_packages

setup(
    name="clinic-legacy-migration",
    version="1.0.0",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    install_requires=[
        "pandas>=2.1.0",
        "sqlalchemy>=2.0.19",
        "psycopg2-binary>=2.9.6",
        "python-dotenv>=1.0.0",
        "pymongo>=4.6.0",
    ],
    extras_require={
        # mongomock 4.x does not accept the sort argument pymongo 4.11 passes to bulk updates
        "test": ["pytest>=8.0.0", "mongomock>=4.1.2", "pymongo>=4.6.0,<4.11"],
    },
    python_requires=">=3.10",
)
