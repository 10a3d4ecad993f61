from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

requirements = [
    "PyYAML>=6.0.3",
    "python-dotenv>=1.0.0",
    "rich>=13.0.0",
]

setup(
    name="docker-prune-timer",
    version="0.1.0",
    author="docker-prune-timer contributors",
    description="Schedule docker system prune with systemd timer units",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/docker-prune-timer/docker-prune-timer",
    packages=find_packages(include=["prune_timer", "prune_timer.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "docker-prune-timer=prune_timer.cli:main",
        ],
    },
    include_package_data=True,
)
