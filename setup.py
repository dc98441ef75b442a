"""
Load Monitor 安装配置
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="load-monitor",
    version="1.0.0",
    description="服务器负载滚动平均服务",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="AI-B",
    python_requires=">=3.9",
    packages=find_packages(include=["load_monitor", "load_monitor.*"]),
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "load-monitor=load_monitor.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
