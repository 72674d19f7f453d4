"""steptrack 打包配置。"""

from __future__ import annotations

from setuptools import find_packages, setup


VERSION = "0.1.0"


setup(
    name="steptrack",
    version=VERSION,
    description="基于加速度计的计步与每日目标追踪服务",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    install_requires=[
        "pydantic>=2",
        "fastapi",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
