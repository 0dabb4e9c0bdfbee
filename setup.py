from setuptools import setup, find_namespace_packages

setup(
    name="sushflix-api",
    version="0.1.0",
    packages=find_namespace_packages(include=["src.sushflix", "src.sushflix.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy[asyncio]",
        "asyncpg",
        "pydantic",
        "pydantic-settings",
        "python-dotenv",
        "email-validator",
        "python-jose[cryptography]",
        "python-multipart",
        "pyyaml",
        "aioboto3",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
            "aiosqlite",
        ],
    },
    entry_points={
        "console_scripts": [
            "sushflix-init-db=src.sushflix.db.init_db:main",
            "sushflix-expire-subscriptions=src.sushflix.tasks.expire_subscriptions:main",
        ],
    },
)
