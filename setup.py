from setuptools import setup, find_packages

setup(
    name="stablecoin-rebalancer",
    version="1.0.0",
    author="Stablecoin Rebalancer Team",
    description="Cross-chain EURC/USDC portfolio rebalancer driven by AI allocation advice",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "pydantic==2.11.7",
        "aiohttp==3.12.15",
        "PyYAML==6.0.2",
        "APScheduler>=3.10,<4",
        "dependency-injector>=4.42",
        "fastapi>=0.115",
        "uvicorn>=0.30",
        "web3>=7.0,<8",
        "eth-account>=0.13",
        "eth-abi>=5.0",
        "eth-utils>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    entry_points={
        "console_scripts": [
            "rebalancer-service=automation_service.main:main",
        ],
    },
    python_requires=">=3.11",
)
