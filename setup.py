"""
setup.py - Project Setup
Packages the finance API server and declares its Python dependencies.

  pip install -e .[test]
  finance-api                      # start the HTTPS server
  python -m unittest discover -v   # run the tests
"""

from setuptools import setup, find_packages

REQUIREMENTS = [
    "flask>=2.3",
    "flask-cors>=4.0",
    "PyJWT>=2.8",
    "bcrypt>=4.0",
    "psycopg[binary]>=3.1",
    "psycopg-pool>=3.1",
    "python-dotenv>=1.0",
]

TEST_REQUIREMENTS = [
    "pytest>=7.4",
    "cryptography>=41.0",
]


setup(
    name="dvoich-finance-api",
    version="1.0.0",
    description="HTTPS JSON API for the dvoich personal-finance app",
    python_requires=">=3.9",
    packages=find_packages(include=["finance_api", "finance_api.*",
                                    "finance_common", "finance_common.*"]),
    install_requires=REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    entry_points={
        "console_scripts": [
            "finance-api = finance_api.api:main",
        ],
    },
)
