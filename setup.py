"""Setup script for the alumni membership backend"""
from setuptools import find_packages, setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="alumni-membership",
    version="1.0.0",
    author="Alumni Association Web Team",
    description="Membership backend - registration, approval workflow, role-based admin access and audit trail",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "backend"},
    packages=find_packages("backend", include=["membership", "membership.*"]),
    py_modules=["create_super_admin"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: FastAPI",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "sqlalchemy>=2.0.0",
        "alembic>=1.13.0",
        "psycopg2-binary>=2.9.9",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-jose[cryptography]>=3.3.0",
        "cryptography>=41.0.0",
        "passlib[bcrypt]==1.7.4",
        "bcrypt==4.1.1",
        "slowapi>=0.1.9",
        "prometheus-client>=0.19.0",
        "prometheus-fastapi-instrumentator>=6.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "create-super-admin=create_super_admin:main",
        ],
    },
)
